"""Payroll Ledger package.

This package is organized by feature modules (attendance, advances, payroll, ...)
with a thin Flask controller layer and service/repository layers underneath.
"""

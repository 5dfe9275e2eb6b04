from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Optional, Sequence

from ..core.enums import PaymentMethod, PaymentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone, in_clause
from .model import SalaryPayment
from .repository import PaymentRepository

_COLUMNS = """
    payment_id, employee_id, employee_name, daily_rate, pay_period_start, pay_period_end,
    basic_amount, overtime_amount, advance_deduction, net_amount, work_days, total_hours,
    payment_date, payment_method, status, basic_overridden
"""


def _to_payment(r: dict, attendance_ids=(), advance_ids=()) -> SalaryPayment:
    return SalaryPayment(
        payment_id=r["payment_id"],
        employee_id=int(r["employee_id"]),
        employee_name=r["employee_name"],
        daily_rate=as_decimal(r["daily_rate"]),
        pay_period_start=r["pay_period_start"],
        pay_period_end=r["pay_period_end"],
        basic_amount=as_decimal(r["basic_amount"]),
        overtime_amount=as_decimal(r["overtime_amount"]),
        advance_deduction=as_decimal(r["advance_deduction"]),
        net_amount=as_decimal(r["net_amount"]),
        payment_date=r["payment_date"],
        payment_method=PaymentMethod(r["payment_method"]),
        work_days=int(r.get("work_days") or 0),
        total_hours=float(r.get("total_hours") or 0),
        status=PaymentStatus(r["status"]),
        basic_overridden=bool(r.get("basic_overridden")),
        attendance_ids=tuple(attendance_ids),
        advance_ids=tuple(advance_ids),
    )


class MySQLPaymentRepository(PaymentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _load_refs(cur, payment_ids: Sequence[str]) -> tuple[dict, dict]:
        attendance = defaultdict(list)
        advances = defaultdict(list)
        if not payment_ids:
            return attendance, advances
        placeholders = in_clause(payment_ids)
        cur.execute(
            f"SELECT payment_id, attendance_id FROM salary_payment_attendance WHERE payment_id IN ({placeholders}) ORDER BY attendance_id",
            tuple(payment_ids),
        )
        for r in fetchall(cur):
            attendance[r["payment_id"]].append(int(r["attendance_id"]))
        cur.execute(
            f"SELECT payment_id, advance_id FROM salary_payment_advances WHERE payment_id IN ({placeholders}) ORDER BY advance_id",
            tuple(payment_ids),
        )
        for r in fetchall(cur):
            advances[r["payment_id"]].append(int(r["advance_id"]))
        return attendance, advances

    def _hydrate(self, cur, rows: list[dict]) -> list[SalaryPayment]:
        ids = [r["payment_id"] for r in rows]
        attendance, advances = self._load_refs(cur, ids)
        return [_to_payment(r, attendance.get(r["payment_id"], ()), advances.get(r["payment_id"], ())) for r in rows]

    def get_by_id(self, payment_id: str) -> Optional[SalaryPayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM salary_payments WHERE payment_id=%s", (payment_id,))
            r = fetchone(cur)
            if not r:
                return None
            return self._hydrate(cur, [r])[0]

    def create(self, payment: SalaryPayment) -> None:
        # One transaction: the payment row and its audit references land together.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO salary_payments(
                    payment_id, employee_id, employee_name, daily_rate, pay_period_start, pay_period_end,
                    basic_amount, overtime_amount, advance_deduction, net_amount, work_days, total_hours,
                    payment_date, payment_method, status, basic_overridden)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    payment.payment_id,
                    payment.employee_id,
                    payment.employee_name,
                    payment.daily_rate,
                    payment.pay_period_start,
                    payment.pay_period_end,
                    payment.basic_amount,
                    payment.overtime_amount,
                    payment.advance_deduction,
                    payment.net_amount,
                    payment.work_days,
                    payment.total_hours,
                    payment.payment_date,
                    payment.payment_method.value,
                    payment.status.value,
                    int(payment.basic_overridden),
                ),
            )
            if payment.attendance_ids:
                cur.executemany(
                    "INSERT INTO salary_payment_attendance(payment_id, attendance_id) VALUES(%s,%s)",
                    [(payment.payment_id, int(a)) for a in payment.attendance_ids],
                )
            if payment.advance_ids:
                cur.executemany(
                    "INSERT INTO salary_payment_advances(payment_id, advance_id) VALUES(%s,%s)",
                    [(payment.payment_id, int(a)) for a in payment.advance_ids],
                )

    def find_for_period(self, *, employee_id: int, period_start: date, period_end: date) -> Optional[SalaryPayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM salary_payments
                WHERE employee_id=%s AND pay_period_start=%s AND pay_period_end=%s
                LIMIT 1
                """,
                (int(employee_id), period_start, period_end),
            )
            r = fetchone(cur)
            if not r:
                return None
            return self._hydrate(cur, [r])[0]

    def list_payments(
        self,
        *,
        employee_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[SalaryPayment]:
        clauses = ["1=1"]
        params: list[object] = []
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))
        if start_date is not None:
            clauses.append("payment_date >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("payment_date <= %s")
            params.append(end_date)
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM salary_payments
                WHERE {" AND ".join(clauses)}
                ORDER BY payment_date DESC, created_at DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return self._hydrate(cur, fetchall(cur))

    def is_attendance_paid(self, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS paid FROM salary_payment_attendance WHERE attendance_id=%s LIMIT 1",
                (int(attendance_id),),
            )
            return fetchone(cur) is not None

    def find_paid_attendance(self, attendance_ids: Sequence[int]) -> dict[int, str]:
        ids = [int(i) for i in attendance_ids]
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT attendance_id, payment_id FROM salary_payment_attendance WHERE attendance_id IN ({in_clause(ids)})",
                tuple(ids),
            )
            return {int(r["attendance_id"]): str(r["payment_id"]) for r in fetchall(cur)}

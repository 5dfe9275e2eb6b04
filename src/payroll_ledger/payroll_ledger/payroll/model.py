from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from ..core.enums import PaymentMethod, PaymentStatus


@dataclass(frozen=True)
class WageBreakdown:
    """Result of a wage calculation over an inclusive pay period."""

    employee_id: int
    period_start: date
    period_end: date
    daily_rate: Decimal
    basic_amount: Decimal
    overtime_amount: Decimal
    work_days: int
    half_days: int = 0
    absent_days: int = 0
    total_hours: float = 0.0
    overtime_hours: float = 0.0
    attendance_ids: tuple[int, ...] = ()

    @property
    def gross_amount(self) -> Decimal:
        return self.basic_amount + self.overtime_amount


@dataclass(frozen=True)
class SalaryPayment:
    """Immutable payment record; numbers are snapshots taken at issuance."""

    payment_id: str
    employee_id: int
    employee_name: str
    daily_rate: Decimal
    pay_period_start: date
    pay_period_end: date
    basic_amount: Decimal
    overtime_amount: Decimal
    advance_deduction: Decimal
    net_amount: Decimal
    payment_date: date
    payment_method: PaymentMethod
    work_days: int = 0
    total_hours: float = 0.0
    status: PaymentStatus = PaymentStatus.ISSUED
    basic_overridden: bool = False
    attendance_ids: tuple[int, ...] = ()
    advance_ids: tuple[int, ...] = ()

    @property
    def gross_amount(self) -> Decimal:
        return self.basic_amount + self.overtime_amount


@dataclass(frozen=True)
class BatchEntry:
    """One employee in a batch run.

    Without a period the payment date is used as a one-day period, which is
    the "pay today's present employees" workflow.
    """

    employee_id: int
    deduct_advances: bool = False
    basic_amount_override: Optional[Decimal] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None


@dataclass(frozen=True)
class BatchFailure:
    employee_id: int
    reason: str
    code: str


@dataclass(frozen=True)
class BatchResult:
    succeeded: list[SalaryPayment] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)

    @property
    def total_net(self) -> Decimal:
        return sum((p.net_amount for p in self.succeeded), Decimal("0.00"))


@dataclass(frozen=True)
class BatchPreviewRow:
    employee_id: int
    employee_name: str = ""
    work_days: int = 0
    total_hours: float = 0.0
    basic_amount: Decimal = Decimal("0.00")
    overtime_amount: Decimal = Decimal("0.00")
    hours_based_amount: Decimal = Decimal("0.00")
    pending_advances: Decimal = Decimal("0.00")
    projected_net: Decimal = Decimal("0.00")
    would_fail: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class EmployeePayrollSummary:
    employee_id: int
    employee_name: str
    period_start: date
    period_end: date
    total_paid: Decimal
    payments_count: int
    pending_advances: Decimal
    total_work_days: int

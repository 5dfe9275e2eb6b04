from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ..attendance.repository import AttendanceRepository
from ..core.enums import AttendanceStatus, PaymentMethod
from ..core.exceptions import NotFoundError
from ..employees.repository import EmployeeRepository
from .repository import PaymentRepository

EARNING = "earning"
DEDUCTION = "deduction"


@dataclass(frozen=True)
class PayslipLine:
    label: str
    amount: Decimal
    kind: str


@dataclass(frozen=True)
class PayslipView:
    """Display-ready payslip built from a payment's snapshots."""

    payment_id: str
    employee_id: int
    employee_name: str
    employee_role: str
    period_start: date
    period_end: date
    payment_date: date
    payment_method: PaymentMethod
    daily_rate: Decimal
    line_items: list[PayslipLine] = field(default_factory=list)
    gross: Decimal = Decimal("0.00")
    deductions: Decimal = Decimal("0.00")
    net: Decimal = Decimal("0.00")
    attendance_days: int = 0
    half_days: int = 0
    total_hours: float = 0.0
    attendance_rows: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "employee": {"id": self.employee_id, "name": self.employee_name, "role": self.employee_role},
            "period": {"start": self.period_start.isoformat(), "end": self.period_end.isoformat()},
            "payment_date": self.payment_date.isoformat(),
            "payment_method": self.payment_method.value,
            "daily_rate": str(self.daily_rate),
            "line_items": [{"label": li.label, "amount": str(li.amount), "kind": li.kind} for li in self.line_items],
            "totals": {"gross": str(self.gross), "deductions": str(self.deductions), "net": str(self.net)},
            "attendance_days": self.attendance_days,
            "half_days": self.half_days,
            "total_hours": self.total_hours,
            "attendance_rows": list(self.attendance_rows),
        }


class PayslipSummarizer:
    """Read-only projection of an issued payment. Never recomputes wages."""

    def __init__(
        self,
        payments: PaymentRepository,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
    ):
        self._payments = payments
        self._attendance = attendance
        self._employees = employees

    def summarize(self, payment_id: str) -> PayslipView:
        payment = self._payments.get_by_id(payment_id)
        if not payment:
            raise NotFoundError("Payment not found", payment_id=payment_id)

        # Role is not snapshotted; name and rate come from the payment itself.
        employee = self._employees.get_by_id(payment.employee_id)
        role = employee.role if employee else ""

        records = sorted(self._attendance.list_by_ids(list(payment.attendance_ids)), key=lambda r: r.work_date)

        basic_label = "Basic pay (override)" if payment.basic_overridden else f"Basic pay ({payment.work_days} days)"
        lines = [PayslipLine(basic_label, payment.basic_amount, EARNING)]
        if payment.overtime_amount:
            lines.append(PayslipLine("Overtime", payment.overtime_amount, EARNING))
        if payment.advance_deduction:
            lines.append(PayslipLine(f"Advances ({len(payment.advance_ids)})", payment.advance_deduction, DEDUCTION))

        return PayslipView(
            payment_id=payment.payment_id,
            employee_id=payment.employee_id,
            employee_name=payment.employee_name,
            employee_role=role,
            period_start=payment.pay_period_start,
            period_end=payment.pay_period_end,
            payment_date=payment.payment_date,
            payment_method=payment.payment_method,
            daily_rate=payment.daily_rate,
            line_items=lines,
            gross=payment.gross_amount,
            deductions=payment.advance_deduction,
            net=payment.net_amount,
            attendance_days=payment.work_days,
            half_days=sum(1 for r in records if r.status == AttendanceStatus.HALF_DAY),
            total_hours=payment.total_hours,
            attendance_rows=[
                {
                    "work_date": r.work_date.isoformat(),
                    "status": r.status.value,
                    "check_in": r.check_in.strftime("%H:%M") if r.check_in else "-",
                    "check_out": r.check_out.strftime("%H:%M") if r.check_out else "-",
                    "work_hours": r.work_hours,
                    "overtime_hours": r.overtime_hours,
                }
                for r in records
            ],
        )

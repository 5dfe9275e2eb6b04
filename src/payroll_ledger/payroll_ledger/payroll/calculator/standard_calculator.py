from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from ...attendance.model import AttendanceRecord
from ...common.validators import to_money
from ...core.constants import OVERTIME_MULTIPLIER, STANDARD_SHIFT_HOURS
from ...core.enums import AttendanceStatus
from ...employees.model import Employee
from ..model import WageBreakdown
from .base import WageCalculator


def _hours(value: float) -> Decimal:
    return Decimal(str(value or 0))


class StandardWageCalculator(WageCalculator):
    """Standard daily-wage rule.

    basic    = daily_rate x present days (half days are not counted)
    overtime = overtime hours x (daily_rate / shift hours) x multiplier
    """

    def __init__(
        self,
        *,
        shift_hours: Decimal = STANDARD_SHIFT_HOURS,
        overtime_multiplier: Decimal = OVERTIME_MULTIPLIER,
    ):
        self._shift_hours = Decimal(str(shift_hours))
        self._multiplier = Decimal(str(overtime_multiplier))

    def calculate(
        self,
        employee: Employee,
        records: Sequence[AttendanceRecord],
        *,
        period_start: date,
        period_end: date,
    ) -> WageBreakdown:
        in_period = [
            r for r in records
            if r.employee_id == employee.employee_id and period_start <= r.work_date <= period_end
        ]
        in_period.sort(key=lambda r: r.work_date)

        work_days = sum(1 for r in in_period if r.status == AttendanceStatus.PRESENT)
        half_days = sum(1 for r in in_period if r.status == AttendanceStatus.HALF_DAY)
        absent_days = sum(1 for r in in_period if r.status == AttendanceStatus.ABSENT)
        overtime_hours = sum((_hours(r.overtime_hours) for r in in_period), Decimal("0"))
        total_hours = sum((_hours(r.work_hours) for r in in_period), Decimal("0"))

        rate = employee.daily_rate
        basic = to_money(rate * work_days)
        overtime = to_money(overtime_hours * (rate / self._shift_hours) * self._multiplier)

        return WageBreakdown(
            employee_id=employee.employee_id,
            period_start=period_start,
            period_end=period_end,
            daily_rate=rate,
            basic_amount=basic,
            overtime_amount=overtime,
            work_days=work_days,
            half_days=half_days,
            absent_days=absent_days,
            total_hours=float(round(total_hours, 2)),
            overtime_hours=float(round(overtime_hours, 2)),
            attendance_ids=tuple(r.attendance_id for r in in_period),
        )

    def hours_based_amount(self, daily_rate: Decimal, work_hours: float) -> Decimal:
        amount = Decimal(daily_rate) * _hours(work_hours) / self._shift_hours
        return to_money(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Sequence

from ...attendance.model import AttendanceRecord
from ...employees.model import Employee
from ..model import WageBreakdown


class WageCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def calculate(
        self,
        employee: Employee,
        records: Sequence[AttendanceRecord],
        *,
        period_start: date,
        period_end: date,
    ) -> WageBreakdown:
        raise NotImplementedError

    @abstractmethod
    def hours_based_amount(self, daily_rate: Decimal, work_hours: float) -> Decimal:
        """Pay for a number of worked hours at the employee's daily rate."""

        raise NotImplementedError

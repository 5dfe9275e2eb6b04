from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..core.enums import EmployeeStatus


@dataclass(frozen=True)
class Employee:
    """Domain entity: a daily-wage employee.

    Owned by the employee directory; payroll only reads it. ``daily_rate``
    changes apply to future calculations, issued payments keep a snapshot.
    """

    employee_id: int
    name: str
    role: str
    daily_rate: Decimal
    status: EmployeeStatus = EmployeeStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE

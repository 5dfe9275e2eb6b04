from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance mark per employee per work date."""

    attendance_id: int
    employee_id: int
    work_date: date
    status: AttendanceStatus
    check_in: Optional[time]
    check_out: Optional[time]
    work_hours: float
    overtime_hours: float = 0.0
    notes: Optional[str] = None


@dataclass(frozen=True)
class AttendanceMark:
    """Input row of the bulk attendance sheet."""

    employee_id: int
    status: AttendanceStatus | str
    check_in: Optional[time | str] = None
    check_out: Optional[time | str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class MarkFailure:
    employee_id: int
    reason: str
    code: str


@dataclass(frozen=True)
class BulkAttendanceResult:
    created: list[AttendanceRecord] = field(default_factory=list)
    failed: list[MarkFailure] = field(default_factory=list)


@dataclass(frozen=True)
class DaySummary:
    """Head-count of marks for one date over active employees."""

    work_date: date
    present: int
    absent: int
    half_day: int
    not_marked: int

    @property
    def total(self) -> int:
        return self.present + self.absent + self.half_day + self.not_marked

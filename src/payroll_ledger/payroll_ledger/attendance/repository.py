from __future__ import annotations

from datetime import date, time
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_period(self, *, employee_id: int, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        """Records with work_date in [start_date, end_date], oldest first."""

        raise NotImplementedError

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_by_ids(self, attendance_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def create(
        self,
        *,
        employee_id: int,
        work_date: date,
        status: AttendanceStatus,
        check_in: Optional[time],
        check_out: Optional[time],
        work_hours: float,
        overtime_hours: float = 0.0,
        notes: Optional[str] = None,
    ) -> int:
        """Insert a mark and return its id.

        Must raise DuplicateRecordError when (employee_id, work_date) exists.
        """

        raise NotImplementedError

    def update(
        self,
        *,
        attendance_id: int,
        status: AttendanceStatus,
        check_in: Optional[time],
        check_out: Optional[time],
        work_hours: float,
        overtime_hours: float,
        notes: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError

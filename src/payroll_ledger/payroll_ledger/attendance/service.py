from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional, Sequence

from ..common.authorization import PayrollAuthorizer, require_payroll_permission
from ..common.datetime_utils import parse_time_of_day
from ..common.locks import KeyedLock
from ..common.validators import optional_text, require_period
from ..core.constants import MAX_WORK_HOURS
from ..core.enums import AttendanceStatus
from ..core.exceptions import DomainError, DuplicateRecordError, NotFoundError, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .factory import WorkHoursStrategyFactory
from .model import AttendanceMark, AttendanceRecord, BulkAttendanceResult, DaySummary, MarkFailure
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def coerce_status(value: AttendanceStatus | str) -> AttendanceStatus:
    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {value!r}", field="status")


class AttendanceService:
    """Use case: record and correct daily attendance marks."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        payments=None,
        *,
        strategy_factory: WorkHoursStrategyFactory | None = None,
        locks: KeyedLock | None = None,
    ):
        self._attendance = attendance
        self._employees = employees
        # Optional PaymentRepository; when given, paid rows are frozen.
        self._payments = payments
        self._factory = strategy_factory or WorkHoursStrategyFactory()
        # Shared with payroll so a row cannot change while it is being paid.
        self._locks = locks or KeyedLock()

    def _active_employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee or not employee.is_active:
            raise NotFoundError("Employee not found or inactive", employee_id=int(employee_id))
        return employee

    def record_attendance(
        self,
        *,
        authorizer: PayrollAuthorizer,
        employee_id: int,
        work_date: date,
        status: AttendanceStatus | str,
        check_in: Optional[time | str] = None,
        check_out: Optional[time | str] = None,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        require_payroll_permission(authorizer, "record_attendance")
        return self._record(
            employee_id=employee_id,
            work_date=work_date,
            status=status,
            check_in=check_in,
            check_out=check_out,
            notes=notes,
        )

    def _record(self, *, employee_id, work_date, status, check_in, check_out, notes) -> AttendanceRecord:
        employee = self._active_employee(employee_id)
        status = coerce_status(status)

        existing = self._attendance.get_for_employee_and_date(employee.employee_id, work_date)
        if existing:
            raise DuplicateRecordError(
                "Attendance already recorded for this date; amend it instead",
                employee_id=employee.employee_id,
                work_date=work_date.isoformat(),
                attendance_id=existing.attendance_id,
            )

        decision = self._factory.for_status(status).decide(
            work_date=work_date,
            check_in=parse_time_of_day(check_in, "check_in"),
            check_out=parse_time_of_day(check_out, "check_out"),
        )
        attendance_id = self._attendance.create(
            employee_id=employee.employee_id,
            work_date=work_date,
            status=status,
            check_in=decision.check_in,
            check_out=decision.check_out,
            work_hours=decision.work_hours,
            overtime_hours=0.0,
            notes=optional_text(notes),
        )
        logger.info(
            "Attendance %s recorded: employee=%s date=%s status=%s hours=%.2f",
            attendance_id, employee.employee_id, work_date, status.value, decision.work_hours,
        )
        return AttendanceRecord(
            attendance_id=attendance_id,
            employee_id=employee.employee_id,
            work_date=work_date,
            status=status,
            check_in=decision.check_in,
            check_out=decision.check_out,
            work_hours=decision.work_hours,
            overtime_hours=0.0,
            notes=optional_text(notes),
        )

    def amend_attendance(
        self,
        *,
        authorizer: PayrollAuthorizer,
        employee_id: int,
        work_date: date,
        status: AttendanceStatus | str | None = None,
        check_in: Optional[time | str] = None,
        check_out: Optional[time | str] = None,
        overtime_hours: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        """Replace an existing mark's status/times/notes; the id is kept.

        Omitted fields keep their current value. Hours are recomputed with the
        same rules as ``record_attendance``.
        """
        require_payroll_permission(authorizer, "amend_attendance")
        with self._locks.hold(int(employee_id)):
            return self._amend(
                employee_id=int(employee_id),
                work_date=work_date,
                status=status,
                check_in=check_in,
                check_out=check_out,
                overtime_hours=overtime_hours,
                notes=notes,
            )

    def _amend(self, *, employee_id, work_date, status, check_in, check_out, overtime_hours, notes) -> AttendanceRecord:
        record = self._attendance.get_for_employee_and_date(employee_id, work_date)
        if not record:
            raise NotFoundError("No attendance recorded for this date", employee_id=employee_id, work_date=work_date.isoformat())
        if self._payments is not None and self._payments.is_attendance_paid(record.attendance_id):
            raise ValidationError(
                "Attendance already paid; it can no longer be amended",
                attendance_id=record.attendance_id,
            )

        new_status = coerce_status(status) if status is not None else record.status
        new_in = parse_time_of_day(check_in, "check_in") if check_in is not None else record.check_in
        new_out = parse_time_of_day(check_out, "check_out") if check_out is not None else record.check_out
        decision = self._factory.for_status(new_status).decide(work_date=work_date, check_in=new_in, check_out=new_out)

        new_overtime = record.overtime_hours
        if overtime_hours is not None:
            try:
                new_overtime = round(float(overtime_hours), 2)
            except (TypeError, ValueError):
                raise ValidationError("Overtime hours must be a number", field="overtime_hours")
            if new_overtime < 0 or new_overtime > MAX_WORK_HOURS:
                raise ValidationError("Overtime hours must be between 0 and 24", field="overtime_hours", value=new_overtime)
        if new_status == AttendanceStatus.ABSENT:
            new_overtime = 0.0

        new_notes = optional_text(notes) if notes is not None else record.notes

        ok = self._attendance.update(
            attendance_id=record.attendance_id,
            status=new_status,
            check_in=decision.check_in,
            check_out=decision.check_out,
            work_hours=decision.work_hours,
            overtime_hours=new_overtime,
            notes=new_notes,
        )
        if not ok:
            raise NotFoundError("Attendance record disappeared during update", attendance_id=record.attendance_id)

        logger.info("Attendance %s amended: status=%s hours=%.2f overtime=%.2f",
                    record.attendance_id, new_status.value, decision.work_hours, new_overtime)
        return AttendanceRecord(
            attendance_id=record.attendance_id,
            employee_id=record.employee_id,
            work_date=record.work_date,
            status=new_status,
            check_in=decision.check_in,
            check_out=decision.check_out,
            work_hours=decision.work_hours,
            overtime_hours=new_overtime,
            notes=new_notes,
        )

    def record_bulk(
        self,
        *,
        authorizer: PayrollAuthorizer,
        work_date: date,
        marks: Sequence[AttendanceMark],
    ) -> BulkAttendanceResult:
        """Mark many employees for one date; each mark succeeds or fails on its own."""
        require_payroll_permission(authorizer, "record_bulk")

        result = BulkAttendanceResult()
        for mark in marks:
            try:
                rec = self._record(
                    employee_id=mark.employee_id,
                    work_date=work_date,
                    status=mark.status,
                    check_in=mark.check_in,
                    check_out=mark.check_out,
                    notes=mark.notes,
                )
            except DomainError as e:
                logger.warning("Bulk attendance skipped employee=%s: %s", mark.employee_id, e)
                result.failed.append(MarkFailure(employee_id=int(mark.employee_id), reason=str(e), code=e.code))
                continue
            result.created.append(rec)
        return result

    def get_day_summary(self, work_date: date) -> DaySummary:
        active_ids = {e.employee_id for e in self._employees.list_active()}
        counts = {s: 0 for s in AttendanceStatus}
        marked: set[int] = set()
        for rec in self._attendance.list_for_date(work_date):
            if rec.employee_id not in active_ids:
                continue
            counts[rec.status] += 1
            marked.add(rec.employee_id)
        return DaySummary(
            work_date=work_date,
            present=counts[AttendanceStatus.PRESENT],
            absent=counts[AttendanceStatus.ABSENT],
            half_day=counts[AttendanceStatus.HALF_DAY],
            not_marked=len(active_ids - marked),
        )

    def list_for_period(self, *, employee_id: int, start: date, end: date) -> list[AttendanceRecord]:
        require_period(start, end)
        return list(self._attendance.list_for_period(employee_id=int(employee_id), start_date=start, end_date=end))

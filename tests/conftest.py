from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

import pytest

from src.payroll_ledger.payroll_ledger.advances.model import AdvanceRecord
from src.payroll_ledger.payroll_ledger.attendance.model import AttendanceRecord
from src.payroll_ledger.payroll_ledger.common.authorization import RoleAuthorizer
from src.payroll_ledger.payroll_ledger.common.clock import FixedClock
from src.payroll_ledger.payroll_ledger.container import build_services
from src.payroll_ledger.payroll_ledger.core.enums import AdvanceStatus, AttendanceStatus, EmployeeStatus, Role
from src.payroll_ledger.payroll_ledger.core.exceptions import ConcurrentModificationError, DuplicateRecordError
from src.payroll_ledger.payroll_ledger.employees.model import Employee


class FakeEmployeeRepo:
    def __init__(self, employees):
        self._by_id = {e.employee_id: e for e in employees}

    def get_by_id(self, employee_id):
        return self._by_id.get(int(employee_id))

    def list_active(self):
        return [e for e in self._by_id.values() if e.is_active]


class FakeAttendanceRepo:
    def __init__(self):
        self._next_id = 1
        self._rows: dict[int, AttendanceRecord] = {}
        self._lock = threading.Lock()

    def get_by_id(self, attendance_id):
        return self._rows.get(int(attendance_id))

    def get_for_employee_and_date(self, employee_id, work_date):
        for r in self._rows.values():
            if r.employee_id == int(employee_id) and r.work_date == work_date:
                return r
        return None

    def list_for_period(self, *, employee_id, start_date, end_date):
        rows = [
            r for r in self._rows.values()
            if r.employee_id == int(employee_id) and start_date <= r.work_date <= end_date
        ]
        return sorted(rows, key=lambda r: r.work_date)

    def list_for_date(self, work_date):
        return [r for r in self._rows.values() if r.work_date == work_date]

    def list_by_ids(self, attendance_ids):
        return [self._rows[int(i)] for i in attendance_ids if int(i) in self._rows]

    def create(self, *, employee_id, work_date, status, check_in, check_out, work_hours, overtime_hours=0.0, notes=None):
        with self._lock:
            if self.get_for_employee_and_date(employee_id, work_date):
                raise DuplicateRecordError("duplicate attendance", employee_id=employee_id)
            aid = self._next_id
            self._next_id += 1
            self._rows[aid] = AttendanceRecord(
                attendance_id=aid,
                employee_id=int(employee_id),
                work_date=work_date,
                status=status,
                check_in=check_in,
                check_out=check_out,
                work_hours=work_hours,
                overtime_hours=overtime_hours,
                notes=notes,
            )
            return aid

    def update(self, *, attendance_id, status, check_in, check_out, work_hours, overtime_hours, notes=None):
        row = self._rows.get(int(attendance_id))
        if not row:
            return False
        self._rows[int(attendance_id)] = replace(
            row,
            status=status,
            check_in=check_in,
            check_out=check_out,
            work_hours=work_hours,
            overtime_hours=overtime_hours,
            notes=notes,
        )
        return True

    def all(self):
        return list(self._rows.values())


class FakeAdvanceRepo:
    def __init__(self):
        self._next_id = 1
        self._rows: dict[int, AdvanceRecord] = {}
        self._lock = threading.Lock()
        self.mark_consumed_calls = 0

    def get_by_id(self, advance_id):
        return self._rows.get(int(advance_id))

    def create(self, *, employee_id, amount, issue_date, notes=None):
        with self._lock:
            aid = self._next_id
            self._next_id += 1
            self._rows[aid] = AdvanceRecord(
                advance_id=aid,
                employee_id=int(employee_id),
                amount=amount,
                issue_date=issue_date,
                notes=notes,
            )
            return aid

    def list_pending(self, employee_id):
        return [
            r for r in sorted(self._rows.values(), key=lambda a: a.advance_id)
            if r.employee_id == int(employee_id) and r.status == AdvanceStatus.PENDING
        ]

    def list_for_employee(self, employee_id):
        return [r for r in self._rows.values() if r.employee_id == int(employee_id)]

    def mark_consumed(self, *, employee_id, advance_ids, payment_id, consumed_at):
        with self._lock:
            self.mark_consumed_calls += 1
            rows = [self._rows.get(int(i)) for i in advance_ids]
            if any(r is None or r.status != AdvanceStatus.PENDING or r.employee_id != int(employee_id) for r in rows):
                raise ConcurrentModificationError("advance no longer pending", employee_id=employee_id)
            for r in rows:
                self._rows[r.advance_id] = replace(
                    r,
                    status=AdvanceStatus.CONSUMED,
                    consumed_by_payment_id=payment_id,
                    consumed_at=consumed_at,
                )
            return len(rows)

    def release_payment(self, payment_id):
        with self._lock:
            count = 0
            for r in list(self._rows.values()):
                if r.consumed_by_payment_id == payment_id:
                    self._rows[r.advance_id] = replace(
                        r, status=AdvanceStatus.PENDING, consumed_by_payment_id=None, consumed_at=None
                    )
                    count += 1
            return count

    def list_consumer_payment_ids(self):
        return sorted({r.consumed_by_payment_id for r in self._rows.values() if r.consumed_by_payment_id})

    def all(self):
        return list(self._rows.values())


class FakePaymentRepo:
    def __init__(self):
        self._rows = {}
        self._lock = threading.Lock()
        self.fail_next_create = False

    def get_by_id(self, payment_id):
        return self._rows.get(payment_id)

    def create(self, payment):
        with self._lock:
            if self.fail_next_create:
                self.fail_next_create = False
                raise RuntimeError("database write failed")
            self._rows[payment.payment_id] = payment

    def find_for_period(self, *, employee_id, period_start, period_end):
        for p in self._rows.values():
            if p.employee_id == int(employee_id) and p.pay_period_start == period_start and p.pay_period_end == period_end:
                return p
        return None

    def list_payments(self, *, employee_id=None, start_date=None, end_date=None, limit=200):
        rows = [
            p for p in self._rows.values()
            if (employee_id is None or p.employee_id == int(employee_id))
            and (start_date is None or p.payment_date >= start_date)
            and (end_date is None or p.payment_date <= end_date)
        ]
        rows.sort(key=lambda p: p.payment_date, reverse=True)
        return rows[:limit]

    def is_attendance_paid(self, attendance_id):
        return any(int(attendance_id) in p.attendance_ids for p in self._rows.values())

    def find_paid_attendance(self, attendance_ids):
        wanted = {int(i) for i in attendance_ids}
        return {
            aid: p.payment_id
            for p in self._rows.values()
            for aid in p.attendance_ids
            if aid in wanted
        }

    def all(self):
        return list(self._rows.values())


@pytest.fixture
def fixed_today():
    return date(2026, 3, 31)


@pytest.fixture
def employees():
    return [
        Employee(employee_id=1, name="An", role="worker", daily_rate=Decimal("500.00")),
        Employee(employee_id=2, name="Binh", role="worker", daily_rate=Decimal("400.00")),
        Employee(employee_id=3, name="Chi", role="driver", daily_rate=Decimal("300.00")),
        Employee(employee_id=9, name="Former", role="worker", daily_rate=Decimal("350.00"), status=EmployeeStatus.INACTIVE),
    ]


@pytest.fixture
def employee_repo(employees):
    return FakeEmployeeRepo(employees)


@pytest.fixture
def attendance_repo():
    return FakeAttendanceRepo()


@pytest.fixture
def advance_repo():
    return FakeAdvanceRepo()


@pytest.fixture
def payment_repo():
    return FakePaymentRepo()


@pytest.fixture
def container(employee_repo, attendance_repo, advance_repo, payment_repo, fixed_today):
    return build_services(
        employees_repo=employee_repo,
        attendance_repo=attendance_repo,
        advances_repo=advance_repo,
        payments_repo=payment_repo,
        clock=FixedClock(fixed_today),
    )


@pytest.fixture
def admin():
    return RoleAuthorizer(Role.ADMIN)


@pytest.fixture
def plain_user():
    return RoleAuthorizer(Role.USER)


@pytest.fixture
def mark_days(container, admin):
    """Record ``count`` consecutive days of ``status`` starting at ``start``."""

    def _mark(employee_id, start, count, status=AttendanceStatus.PRESENT):
        return [
            container.attendance_service.record_attendance(
                authorizer=admin,
                employee_id=employee_id,
                work_date=start + timedelta(days=i),
                status=status,
            )
            for i in range(count)
        ]

    return _mark

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from .advances.mysql_advance_repository import MySQLAdvanceRepository
from .advances.repository import AdvanceRepository
from .advances.service import AdvanceLedger
from .attendance.factory import WorkHoursStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.clock import Clock, SystemClock
from .common.locks import KeyedLock
from .core.constants import DEFAULT_BATCH_WORKERS, MAX_ADVANCE_AMOUNT, OVERTIME_MULTIPLIER, STANDARD_SHIFT_HOURS
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .payroll.calculator.standard_calculator import StandardWageCalculator
from .payroll.mysql_payment_repository import MySQLPaymentRepository
from .payroll.payslip import PayslipSummarizer
from .payroll.repository import PaymentRepository
from .payroll.service import PayrollRunService, WageService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    clock: Clock
    locks: KeyedLock

    employees_repo: EmployeeRepository
    attendance_repo: AttendanceRepository
    advances_repo: AdvanceRepository
    payments_repo: PaymentRepository

    attendance_service: AttendanceService
    advance_ledger: AdvanceLedger
    wage_service: WageService
    payroll_service: PayrollRunService
    payslip_summarizer: PayslipSummarizer


def build_services(
    *,
    employees_repo: EmployeeRepository,
    attendance_repo: AttendanceRepository,
    advances_repo: AdvanceRepository,
    payments_repo: PaymentRepository,
    settings: Any = None,
    clock: Optional[Clock] = None,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over any set of repositories (MySQL or in-memory)."""
    clock = clock or SystemClock()
    locks = KeyedLock()

    calculator = StandardWageCalculator(
        shift_hours=Decimal(str(getattr(settings, "STANDARD_SHIFT_HOURS", STANDARD_SHIFT_HOURS))),
        overtime_multiplier=Decimal(str(getattr(settings, "OVERTIME_MULTIPLIER", OVERTIME_MULTIPLIER))),
    )
    attendance_service = AttendanceService(
        attendance_repo,
        employees_repo,
        payments_repo,
        strategy_factory=WorkHoursStrategyFactory(),
        locks=locks,
    )
    advance_ledger = AdvanceLedger(
        advances_repo,
        employees_repo,
        clock=clock,
        locks=locks,
        max_amount=Decimal(str(getattr(settings, "MAX_ADVANCE_AMOUNT", MAX_ADVANCE_AMOUNT))),
    )
    wage_service = WageService(employees_repo, attendance_repo, calculator=calculator)
    payroll_service = PayrollRunService(
        employees_repo,
        payments_repo,
        wage_service,
        advance_ledger,
        clock=clock,
        max_workers=int(getattr(settings, "PAYROLL_BATCH_WORKERS", DEFAULT_BATCH_WORKERS)),
    )
    payslip_summarizer = PayslipSummarizer(payments_repo, attendance_repo, employees_repo)

    return Container(
        conn=conn,
        clock=clock,
        locks=locks,
        employees_repo=employees_repo,
        attendance_repo=attendance_repo,
        advances_repo=advances_repo,
        payments_repo=payments_repo,
        attendance_service=attendance_service,
        advance_ledger=advance_ledger,
        wage_service=wage_service,
        payroll_service=payroll_service,
        payslip_summarizer=payslip_summarizer,
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return build_services(
        employees_repo=MySQLEmployeeRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        advances_repo=MySQLAdvanceRepository(conn),
        payments_repo=MySQLPaymentRepository(conn),
        settings=settings,
        conn=conn,
    )

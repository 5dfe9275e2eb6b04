from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence
from uuid import uuid4

from ..advances.model import ConsumeResult
from ..advances.service import AdvanceLedger
from ..attendance.repository import AttendanceRepository
from ..common.authorization import PayrollAuthorizer, require_payroll_permission
from ..common.clock import Clock, SystemClock
from ..common.locks import InFlightRegistry
from ..common.validators import require_period, require_positive_amount
from ..core.constants import DEFAULT_BATCH_WORKERS, DEFAULT_HISTORY_LIMIT
from ..core.enums import PaymentMethod
from ..core.exceptions import (
    DomainError,
    DuplicateRecordError,
    InsufficientEarningsError,
    NotFoundError,
    RequestInProgressError,
    ValidationError,
)
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .calculator.base import WageCalculator
from .calculator.standard_calculator import StandardWageCalculator
from .model import (
    BatchEntry,
    BatchFailure,
    BatchPreviewRow,
    BatchResult,
    EmployeePayrollSummary,
    SalaryPayment,
    WageBreakdown,
)
from .repository import PaymentRepository

logger = logging.getLogger(__name__)


def coerce_method(value: PaymentMethod | str) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown payment method: {value!r}", field="payment_method")


class WageService:
    """Use case: aggregate attendance into a wage figure. Read-only."""

    def __init__(
        self,
        employees: EmployeeRepository,
        attendance: AttendanceRepository,
        *,
        calculator: Optional[WageCalculator] = None,
    ):
        self._employees = employees
        self._attendance = attendance
        self._calculator = calculator or StandardWageCalculator()

    @property
    def calculator(self) -> WageCalculator:
        return self._calculator

    def get_employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError("Employee not found", employee_id=int(employee_id))
        return employee

    def calculate(self, employee_id: int, period_start: date, period_end: date) -> WageBreakdown:
        return self.calculate_for(self.get_employee(employee_id), period_start, period_end)

    def calculate_for(self, employee: Employee, period_start: date, period_end: date) -> WageBreakdown:
        require_period(period_start, period_end)
        records = self._attendance.list_for_period(
            employee_id=employee.employee_id,
            start_date=period_start,
            end_date=period_end,
        )
        return self._calculator.calculate(employee, records, period_start=period_start, period_end=period_end)


class PayrollRunService:
    """Use case: turn a wage calculation into an immutable salary payment.

    Payroll work for one employee is serialized through the ledger's keyed
    lock, so two runs can never both consume the same pending advances.
    Different employees run independently (batches use a thread pool).
    """

    def __init__(
        self,
        employees: EmployeeRepository,
        payments: PaymentRepository,
        wages: WageService,
        ledger: AdvanceLedger,
        *,
        clock: Clock | None = None,
        max_workers: int = DEFAULT_BATCH_WORKERS,
    ):
        self._employees = employees
        self._payments = payments
        self._wages = wages
        self._ledger = ledger
        self._clock = clock or SystemClock()
        self._locks = ledger.locks
        self._in_flight = InFlightRegistry()
        self._max_workers = max(1, int(max_workers))

    def _active_employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee or not employee.is_active:
            raise NotFoundError("Employee not found or inactive", employee_id=int(employee_id))
        return employee

    def pay(
        self,
        *,
        authorizer: PayrollAuthorizer,
        employee_id: int,
        period_start: date,
        period_end: date,
        payment_date: Optional[date] = None,
        payment_method: PaymentMethod | str = PaymentMethod.CASH,
        deduct_advances: bool = False,
    ) -> SalaryPayment:
        require_payroll_permission(authorizer, "pay")
        return self._pay_one(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            payment_date=payment_date or self._clock.today(),
            payment_method=coerce_method(payment_method),
            deduct_advances=bool(deduct_advances),
        )

    def _pay_one(
        self,
        *,
        employee_id: int,
        period_start: date,
        period_end: date,
        payment_date: date,
        payment_method: PaymentMethod,
        deduct_advances: bool,
        basic_override: Optional[Decimal] = None,
    ) -> SalaryPayment:
        require_period(period_start, period_end)
        employee = self._active_employee(employee_id)

        key = ("pay", employee.employee_id, period_start, period_end)
        if not self._in_flight.claim(key):
            raise RequestInProgressError(
                "A payment for this employee and period is already in progress",
                employee_id=employee.employee_id,
                period_start=period_start.isoformat(),
                period_end=period_end.isoformat(),
            )
        try:
            with self._locks.hold(employee.employee_id):
                return self._issue(
                    employee=employee,
                    period_start=period_start,
                    period_end=period_end,
                    payment_date=payment_date,
                    payment_method=payment_method,
                    deduct_advances=deduct_advances,
                    basic_override=basic_override,
                )
        finally:
            self._in_flight.release(key)

    def _issue(
        self,
        *,
        employee: Employee,
        period_start: date,
        period_end: date,
        payment_date: date,
        payment_method: PaymentMethod,
        deduct_advances: bool,
        basic_override: Optional[Decimal],
    ) -> SalaryPayment:
        existing = self._payments.find_for_period(
            employee_id=employee.employee_id,
            period_start=period_start,
            period_end=period_end,
        )
        if existing:
            raise DuplicateRecordError(
                "Employee already paid for this period",
                employee_id=employee.employee_id,
                payment_id=existing.payment_id,
                period_start=period_start.isoformat(),
                period_end=period_end.isoformat(),
            )

        breakdown = self._wages.calculate_for(employee, period_start, period_end)
        already_paid = self._payments.find_paid_attendance(breakdown.attendance_ids)
        if already_paid:
            raise DuplicateRecordError(
                "Attendance in this period is already covered by another payment",
                employee_id=employee.employee_id,
                attendance_ids=sorted(already_paid),
                payment_ids=sorted(set(already_paid.values())),
                period_start=period_start.isoformat(),
                period_end=period_end.isoformat(),
            )

        basic, overtime = breakdown.basic_amount, breakdown.overtime_amount
        if basic_override is not None:
            basic, overtime = basic_override, Decimal("0.00")

        pending = self._ledger.list_pending(employee.employee_id) if deduct_advances else []
        deduction = sum((a.amount for a in pending), Decimal("0.00"))
        if basic + overtime - deduction < 0:
            raise InsufficientEarningsError(
                "Advances exceed earnings for this period",
                employee_id=employee.employee_id,
                basic_amount=str(basic),
                overtime_amount=str(overtime),
                advance_deduction=str(deduction),
            )

        # Advances are stamped with the payment id before the payment row is
        # written; a failed write releases them again.
        payment_id = uuid4().hex
        consumed = ConsumeResult(payment_id=payment_id, total=Decimal("0.00"))
        if pending:
            consumed = self._ledger.consume(
                employee.employee_id,
                payment_id,
                expected_advance_ids=[a.advance_id for a in pending],
                consumed_at=payment_date,
            )

        payment = SalaryPayment(
            payment_id=payment_id,
            employee_id=employee.employee_id,
            employee_name=employee.name,
            daily_rate=employee.daily_rate,
            pay_period_start=period_start,
            pay_period_end=period_end,
            basic_amount=basic,
            overtime_amount=overtime,
            advance_deduction=consumed.total,
            net_amount=basic + overtime - consumed.total,
            payment_date=payment_date,
            payment_method=payment_method,
            work_days=breakdown.work_days,
            total_hours=breakdown.total_hours,
            basic_overridden=basic_override is not None,
            attendance_ids=breakdown.attendance_ids,
            advance_ids=consumed.advance_ids,
        )
        try:
            self._payments.create(payment)
        except Exception:
            if consumed.advance_ids:
                self._ledger.release(payment_id)
            raise

        logger.info(
            "Payment %s issued: employee=%s period=%s..%s basic=%s overtime=%s deduction=%s net=%s",
            payment_id, employee.employee_id, period_start, period_end,
            basic, overtime, consumed.total, payment.net_amount,
        )
        return payment

    def pay_batch(
        self,
        *,
        authorizer: PayrollAuthorizer,
        entries: Sequence[BatchEntry],
        payment_date: Optional[date] = None,
        payment_method: PaymentMethod | str = PaymentMethod.CASH,
    ) -> BatchResult:
        """Pay several employees; each entry succeeds or fails on its own.

        Results keep the input order. Entries for different employees run in
        parallel; a repeated employee id in the same batch is rejected.
        """
        require_payroll_permission(authorizer, "pay_batch")
        payment_date = payment_date or self._clock.today()
        method = coerce_method(payment_method)

        outcomes: list[SalaryPayment | BatchFailure | None] = [None] * len(entries)
        jobs: list[tuple[int, BatchEntry]] = []
        seen: set[int] = set()
        for idx, entry in enumerate(entries):
            if int(entry.employee_id) in seen:
                outcomes[idx] = BatchFailure(
                    employee_id=int(entry.employee_id),
                    reason="Employee listed more than once in this batch",
                    code=DuplicateRecordError.code,
                )
                continue
            seen.add(int(entry.employee_id))
            jobs.append((idx, entry))

        if jobs:
            workers = min(self._max_workers, len(jobs))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="payroll") as pool:
                futures = [
                    (idx, pool.submit(self._run_entry, entry, payment_date, method))
                    for idx, entry in jobs
                ]
                for idx, future in futures:
                    outcomes[idx] = future.result()

        result = BatchResult()
        for outcome in outcomes:
            if isinstance(outcome, SalaryPayment):
                result.succeeded.append(outcome)
            elif outcome is not None:
                result.failed.append(outcome)

        logger.info("Batch payroll finished: %s paid, %s failed, net total %s",
                    len(result.succeeded), len(result.failed), result.total_net)
        return result

    def _run_entry(self, entry: BatchEntry, payment_date: date, method: PaymentMethod) -> SalaryPayment | BatchFailure:
        employee_id = int(entry.employee_id)
        try:
            override = None
            if entry.basic_amount_override is not None:
                override = require_positive_amount(entry.basic_amount_override, "basic_amount_override")
            return self._pay_one(
                employee_id=employee_id,
                period_start=entry.period_start or payment_date,
                period_end=entry.period_end or entry.period_start or payment_date,
                payment_date=payment_date,
                payment_method=method,
                deduct_advances=bool(entry.deduct_advances),
                basic_override=override,
            )
        except DomainError as e:
            logger.warning("Batch entry rejected: employee=%s code=%s reason=%s", employee_id, e.code, e)
            return BatchFailure(employee_id=employee_id, reason=str(e), code=e.code)
        except Exception as e:
            # Storage failures stay scoped to their own entry.
            logger.exception("Batch entry failed unexpectedly: employee=%s", employee_id)
            return BatchFailure(employee_id=employee_id, reason=str(e) or type(e).__name__, code="UNEXPECTED_ERROR")

    def preview_batch(
        self,
        *,
        employee_ids: Sequence[int],
        period_start: date,
        period_end: date,
        deduct_advances: bool = False,
    ) -> list[BatchPreviewRow]:
        """Dry run of ``pay_batch`` with computed amounts. No side effects."""
        require_period(period_start, period_end)
        rows: list[BatchPreviewRow] = []
        for employee_id in employee_ids:
            try:
                employee = self._active_employee(employee_id)
            except NotFoundError as e:
                rows.append(BatchPreviewRow(employee_id=int(employee_id), would_fail=True, error=str(e)))
                continue

            breakdown = self._wages.calculate_for(employee, period_start, period_end)
            pending = self._ledger.get_outstanding_balance(employee.employee_id) if deduct_advances else Decimal("0.00")
            net = breakdown.gross_amount - pending
            already_paid = self._payments.find_paid_attendance(breakdown.attendance_ids)
            rows.append(
                BatchPreviewRow(
                    employee_id=employee.employee_id,
                    employee_name=employee.name,
                    work_days=breakdown.work_days,
                    total_hours=breakdown.total_hours,
                    basic_amount=breakdown.basic_amount,
                    overtime_amount=breakdown.overtime_amount,
                    hours_based_amount=self._wages.calculator.hours_based_amount(employee.daily_rate, breakdown.total_hours),
                    pending_advances=pending,
                    projected_net=net,
                    would_fail=net < 0 or bool(already_paid),
                    error="Attendance already paid" if already_paid else None,
                )
            )
        return rows

    def list_payments(
        self,
        *,
        employee_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[SalaryPayment]:
        if start and end:
            require_period(start, end)
        return list(self._payments.list_payments(employee_id=employee_id, start_date=start, end_date=end, limit=limit))

    def get_employee_summary(self, employee_id: int, *, start: date, end: date) -> EmployeePayrollSummary:
        employee = self._wages.get_employee(employee_id)
        require_period(start, end)
        payments = self._payments.list_payments(employee_id=employee.employee_id, start_date=start, end_date=end, limit=10_000)
        breakdown = self._wages.calculate_for(employee, start, end)
        return EmployeePayrollSummary(
            employee_id=employee.employee_id,
            employee_name=employee.name,
            period_start=start,
            period_end=end,
            total_paid=sum((p.net_amount for p in payments), Decimal("0.00")),
            payments_count=len(payments),
            pending_advances=self._ledger.get_outstanding_balance(employee.employee_id),
            total_work_days=breakdown.work_days,
        )

    def recover_orphaned_advances(self, *, authorizer: PayrollAuthorizer) -> int:
        """Return advances consumed by payments that were never written.

        A crash between consume and the payment write leaves advances stamped
        with an unknown payment id; this re-derives the state from storage.
        """
        require_payroll_permission(authorizer, "recover_orphaned_advances")
        known = [pid for pid in self._ledger.consumer_payment_ids() if self._payments.get_by_id(pid) is not None]
        return self._ledger.reconcile_orphans(known)

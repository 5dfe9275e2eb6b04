from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ..common.authorization import PayrollAuthorizer, require_payroll_permission
from ..common.clock import Clock, SystemClock
from ..common.locks import InFlightRegistry, KeyedLock
from ..common.validators import optional_text, require_positive_amount, to_money
from ..core.constants import MAX_ADVANCE_AMOUNT
from ..core.exceptions import ConcurrentModificationError, NotFoundError, RequestInProgressError
from ..employees.repository import EmployeeRepository
from .model import AdvanceRecord, ConsumeResult
from .repository import AdvanceRepository

logger = logging.getLogger(__name__)


class AdvanceLedger:
    """Tracks cash advances and their pending -> consumed lifecycle.

    The whole pending set of an employee is one indivisible balance: it is
    either untouched or consumed in full by exactly one payment.
    """

    def __init__(
        self,
        advances: AdvanceRepository,
        employees: EmployeeRepository,
        *,
        clock: Clock | None = None,
        locks: KeyedLock | None = None,
        max_amount: Decimal = MAX_ADVANCE_AMOUNT,
    ):
        self._advances = advances
        self._employees = employees
        self._clock = clock or SystemClock()
        self._locks = locks or KeyedLock()
        self._in_flight = InFlightRegistry()
        self._max_amount = to_money(max_amount)

    @property
    def locks(self) -> KeyedLock:
        return self._locks

    def issue_advance(
        self,
        *,
        authorizer: PayrollAuthorizer,
        employee_id: int,
        amount,
        issue_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> AdvanceRecord:
        require_payroll_permission(authorizer, "issue_advance")
        amount = require_positive_amount(amount, "amount", maximum=self._max_amount)

        employee = self._employees.get_by_id(int(employee_id))
        if not employee or not employee.is_active:
            raise NotFoundError("Employee not found or inactive", employee_id=int(employee_id))

        issue_date = issue_date or self._clock.today()
        notes = optional_text(notes)

        key = ("advance", employee.employee_id, amount, issue_date, notes)
        if not self._in_flight.claim(key):
            raise RequestInProgressError("Identical advance request is already in progress", employee_id=employee.employee_id)
        try:
            with self._locks.hold(employee.employee_id):
                advance_id = self._advances.create(
                    employee_id=employee.employee_id,
                    amount=amount,
                    issue_date=issue_date,
                    notes=notes,
                )
        finally:
            self._in_flight.release(key)

        logger.info("Advance %s issued: employee=%s amount=%s date=%s", advance_id, employee.employee_id, amount, issue_date)
        return AdvanceRecord(
            advance_id=advance_id,
            employee_id=employee.employee_id,
            amount=amount,
            issue_date=issue_date,
            notes=notes,
        )

    def get_outstanding_balance(self, employee_id: int) -> Decimal:
        return sum((a.amount for a in self._advances.list_pending(int(employee_id))), Decimal("0.00"))

    def list_pending(self, employee_id: int) -> list[AdvanceRecord]:
        return list(self._advances.list_pending(int(employee_id)))

    def list_history(self, employee_id: int) -> list[AdvanceRecord]:
        return list(self._advances.list_for_employee(int(employee_id)))

    def consume(
        self,
        employee_id: int,
        payment_id: str,
        *,
        expected_advance_ids: Optional[Sequence[int]] = None,
        consumed_at: Optional[date] = None,
    ) -> ConsumeResult:
        """Flip every pending advance of the employee to consumed.

        Called only by the payroll run. A second call for the same employee
        finds nothing pending and returns a zero total. When
        ``expected_advance_ids`` is given, the pending set must still be
        exactly that set, otherwise ConcurrentModificationError.
        """
        employee_id = int(employee_id)
        with self._locks.hold(employee_id):
            pending = self._advances.list_pending(employee_id)
            ids = tuple(a.advance_id for a in pending)

            if expected_advance_ids is not None and set(ids) != {int(i) for i in expected_advance_ids}:
                raise ConcurrentModificationError(
                    "Pending advances changed between read and consume",
                    employee_id=employee_id,
                    expected=sorted(int(i) for i in expected_advance_ids),
                    found=sorted(ids),
                )
            if not ids:
                return ConsumeResult(payment_id=payment_id, total=Decimal("0.00"))

            self._advances.mark_consumed(
                employee_id=employee_id,
                advance_ids=ids,
                payment_id=payment_id,
                consumed_at=consumed_at or self._clock.today(),
            )
            total = sum((a.amount for a in pending), Decimal("0.00"))

        logger.info("Consumed %s advance(s) totalling %s for employee=%s payment=%s", len(ids), total, employee_id, payment_id)
        return ConsumeResult(payment_id=payment_id, total=total, advance_ids=ids)

    def release(self, payment_id: str) -> int:
        """Undo a consume whose payment was never persisted."""
        count = self._advances.release_payment(payment_id)
        if count:
            logger.warning("Released %s advance(s) stamped with unpersisted payment %s", count, payment_id)
        return count

    def consumer_payment_ids(self) -> list[str]:
        return list(self._advances.list_consumer_payment_ids())

    def reconcile_orphans(self, known_payment_ids) -> int:
        """Release every advance stamped with a payment id not in ``known_payment_ids``."""
        known = set(known_payment_ids)
        return sum(self.release(pid) for pid in self.consumer_payment_ids() if pid not in known)

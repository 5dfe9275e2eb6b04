from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from .model import AdvanceRecord


class AdvanceRepository(Protocol):
    def get_by_id(self, advance_id: int) -> Optional[AdvanceRecord]:
        raise NotImplementedError

    def create(self, *, employee_id: int, amount: Decimal, issue_date: date, notes: Optional[str] = None) -> int:
        raise NotImplementedError

    def list_pending(self, employee_id: int) -> Sequence[AdvanceRecord]:
        raise NotImplementedError

    def list_for_employee(self, employee_id: int) -> Sequence[AdvanceRecord]:
        raise NotImplementedError

    def mark_consumed(
        self,
        *,
        employee_id: int,
        advance_ids: Sequence[int],
        payment_id: str,
        consumed_at: date,
    ) -> int:
        """Flip the given pending advances to consumed in one step.

        All-or-nothing: when any id is no longer pending for the employee,
        nothing is changed and ConcurrentModificationError is raised.
        Returns the number of rows flipped.
        """

        raise NotImplementedError

    def release_payment(self, payment_id: str) -> int:
        """Return advances stamped with ``payment_id`` to pending."""

        raise NotImplementedError

    def list_consumer_payment_ids(self) -> Sequence[str]:
        """Distinct payment ids stamped on consumed advances."""

        raise NotImplementedError

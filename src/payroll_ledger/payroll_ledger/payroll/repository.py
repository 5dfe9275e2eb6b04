from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import SalaryPayment


class PaymentRepository(Protocol):
    def get_by_id(self, payment_id: str) -> Optional[SalaryPayment]:
        raise NotImplementedError

    def create(self, payment: SalaryPayment) -> None:
        """Persist the payment together with its attendance/advance references."""

        raise NotImplementedError

    def find_for_period(self, *, employee_id: int, period_start: date, period_end: date) -> Optional[SalaryPayment]:
        raise NotImplementedError

    def list_payments(
        self,
        *,
        employee_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[SalaryPayment]:
        """Payments filtered by payment_date range, newest first."""

        raise NotImplementedError

    def is_attendance_paid(self, attendance_id: int) -> bool:
        raise NotImplementedError

    def find_paid_attendance(self, attendance_ids: Sequence[int]) -> dict[int, str]:
        """Map each already-paid attendance id to the payment that covers it."""

        raise NotImplementedError

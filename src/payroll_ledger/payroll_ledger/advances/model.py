from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..core.enums import AdvanceStatus


@dataclass(frozen=True)
class AdvanceRecord:
    """Domain entity: a cash advance issued to an employee."""

    advance_id: int
    employee_id: int
    amount: Decimal
    issue_date: date
    status: AdvanceStatus = AdvanceStatus.PENDING
    consumed_by_payment_id: Optional[str] = None
    consumed_at: Optional[date] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ConsumeResult:
    payment_id: str
    total: Decimal
    advance_ids: tuple[int, ...] = ()

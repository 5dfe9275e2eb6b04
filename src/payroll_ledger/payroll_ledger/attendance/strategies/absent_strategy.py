from __future__ import annotations

from datetime import date, time
from typing import Optional

from .base import HoursDecision, WorkHoursStrategy


class AbsentStrategy(WorkHoursStrategy):
    """Absent: zero hours, supplied times are discarded."""

    def decide(self, *, work_date: date, check_in: Optional[time], check_out: Optional[time]) -> HoursDecision:
        return HoursDecision(check_in=None, check_out=None, work_hours=0.0)

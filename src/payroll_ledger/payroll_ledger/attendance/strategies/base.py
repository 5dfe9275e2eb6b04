from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from ...common.datetime_utils import shift_hours
from ...core.constants import MAX_WORK_HOURS
from ...core.exceptions import ValidationError


@dataclass(frozen=True)
class HoursDecision:
    check_in: Optional[time]
    check_out: Optional[time]
    work_hours: float


class WorkHoursStrategy(ABC):
    """Strategy Pattern: encapsulate how a status turns into worked hours."""

    @abstractmethod
    def decide(self, *, work_date: date, check_in: Optional[time], check_out: Optional[time]) -> HoursDecision:
        raise NotImplementedError


class TimedShiftStrategy(WorkHoursStrategy):
    """Hours from the check-in/check-out pair, or a fixed default without times."""

    default_hours: float = 0.0

    def decide(self, *, work_date: date, check_in: Optional[time], check_out: Optional[time]) -> HoursDecision:
        if check_in is None and check_out is None:
            return HoursDecision(check_in=None, check_out=None, work_hours=self.default_hours)
        if check_in is None or check_out is None:
            missing = "check_in" if check_in is None else "check_out"
            raise ValidationError("Both check-in and check-out times are required", field=missing)
        hours = shift_hours(work_date, check_in, check_out, max_hours=MAX_WORK_HOURS)
        return HoursDecision(check_in=check_in, check_out=check_out, work_hours=hours)

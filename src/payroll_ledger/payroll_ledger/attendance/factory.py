from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import AttendanceStatus
from .strategies.absent_strategy import AbsentStrategy
from .strategies.base import WorkHoursStrategy
from .strategies.half_day_strategy import HalfDayStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class WorkHoursStrategyFactory:
    """Factory Pattern: choose the hours strategy for an attendance status."""

    def for_status(self, status: AttendanceStatus) -> WorkHoursStrategy:
        if status == AttendanceStatus.ABSENT:
            return AbsentStrategy()
        if status == AttendanceStatus.HALF_DAY:
            return HalfDayStrategy()
        return PresentStrategy()

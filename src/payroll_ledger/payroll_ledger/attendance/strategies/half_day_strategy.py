from __future__ import annotations

from ...core.constants import HALF_DAY_HOURS
from .base import TimedShiftStrategy


class HalfDayStrategy(TimedShiftStrategy):
    """Half day: recorded times, or 4 hours when no times were captured."""

    default_hours = HALF_DAY_HOURS

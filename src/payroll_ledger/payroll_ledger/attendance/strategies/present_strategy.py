from __future__ import annotations

from ...core.constants import FULL_DAY_HOURS
from .base import TimedShiftStrategy


class PresentStrategy(TimedShiftStrategy):
    """Full day: recorded times, or 8 hours when no times were captured."""

    default_hours = FULL_DAY_HOURS

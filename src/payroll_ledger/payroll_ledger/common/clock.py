from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Protocol


class Clock(Protocol):
    """Supplies "current date" for defaulting payment and issue dates."""

    def today(self) -> date:
        raise NotImplementedError


class SystemClock:
    def today(self) -> date:
        return date.today()


@dataclass
class FixedClock:
    """Clock pinned to one day (tests, back-dated imports)."""

    current: date

    def today(self) -> date:
        return self.current

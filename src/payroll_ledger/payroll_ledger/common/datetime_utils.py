from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from ..core.exceptions import ValidationError


def parse_iso_date(value: str, field_name: str = "date") -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be YYYY-MM-DD", field=field_name, value=str(value))


def parse_time_of_day(value: Union[str, time, None], field_name: str) -> Optional[time]:
    """Accept datetime.time, 'HH:MM' or 'HH:MM:SS'; blank means missing."""
    if value is None or isinstance(value, time):
        return value
    v = str(value).strip()
    if not v:
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid time (HH:MM): {value!r}", field=field_name)


def shift_hours(work_date: date, check_in: time, check_out: time, *, max_hours: float = 24.0) -> float:
    """Hours between check-in and check-out on ``work_date``.

    A check-out earlier than the check-in is a shift crossing midnight, so it
    lands on the next day. Result is clamped to [0, max_hours].
    """
    start = datetime.combine(work_date, check_in)
    end = datetime.combine(work_date, check_out)
    if end < start:
        end += timedelta(days=1)
    hours = (end - start).total_seconds() / 3600
    return round(max(0.0, min(max_hours, hours)), 2)

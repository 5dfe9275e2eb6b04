"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

FULL_DAY_HOURS = 8.0
HALF_DAY_HOURS = 4.0
MAX_WORK_HOURS = 24.0

STANDARD_SHIFT_HOURS = Decimal("8")
OVERTIME_MULTIPLIER = Decimal("1.5")

MAX_ADVANCE_AMOUNT = Decimal("100000")
DEFAULT_BATCH_WORKERS = 4
DEFAULT_HISTORY_LIMIT = 200

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from ..core.exceptions import InvalidAmountError, ValidationError

CENTS = Decimal("0.01")


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def to_money(value) -> Decimal:
    """Coerce int/float/str/Decimal into a 2-place Decimal (half-up)."""
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, AttributeError):
            raise InvalidAmountError(f"Invalid amount: {value!r}", field="amount", value=str(value))
    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {value!r}", field="amount", value=str(value))
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def require_positive_amount(value, field_name: str = "amount", *, maximum: Optional[Decimal] = None) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidAmountError(f"{field_name} is required", field=field_name)
    amount = to_money(value)
    if amount <= 0:
        raise InvalidAmountError(f"{field_name} must be greater than zero", field=field_name, value=str(amount))
    if maximum is not None and amount > maximum:
        raise InvalidAmountError(
            f"{field_name} must not exceed {maximum}",
            field=field_name,
            value=str(amount),
            maximum=str(maximum),
        )
    return amount


def require_period(start: date, end: date) -> None:
    if end < start:
        raise ValidationError(
            "Period end must be on or after period start",
            field="period_end",
            period_start=start.isoformat(),
            period_end=end.isoformat(),
        )

from datetime import date, time
from decimal import Decimal

import pytest

from src.payroll_ledger.payroll_ledger.common.datetime_utils import parse_time_of_day, shift_hours
from src.payroll_ledger.payroll_ledger.common.validators import require_period, require_positive_amount, to_money
from src.payroll_ledger.payroll_ledger.core.exceptions import InvalidAmountError, ValidationError


def test_to_money_rounds_half_up():
    assert to_money("10.005") == Decimal("10.01")
    assert to_money(3) == Decimal("3.00")


def test_require_positive_amount_honours_maximum():
    assert require_positive_amount("99.99", maximum=Decimal("100")) == Decimal("99.99")
    with pytest.raises(InvalidAmountError):
        require_positive_amount("100.01", maximum=Decimal("100"))
    with pytest.raises(InvalidAmountError):
        require_positive_amount(True)


def test_require_period_rejects_reversed_range():
    require_period(date(2026, 3, 1), date(2026, 3, 1))
    with pytest.raises(ValidationError):
        require_period(date(2026, 3, 2), date(2026, 3, 1))


def test_parse_time_of_day_formats():
    assert parse_time_of_day("07:15", "check_in") == time(7, 15)
    assert parse_time_of_day("07:15:30", "check_in") == time(7, 15, 30)
    assert parse_time_of_day("  ", "check_in") is None
    with pytest.raises(ValidationError):
        parse_time_of_day("7pm", "check_in")


def test_shift_hours_clamps_and_wraps():
    day = date(2026, 3, 2)
    assert shift_hours(day, time(23, 30), time(0, 15)) == 0.75
    assert shift_hours(day, time(9, 0), time(9, 0)) == 0.0

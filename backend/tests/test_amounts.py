from decimal import Decimal

import pytest

from tonpay.exceptions import ConversionError
from tonpay.services.amounts import normalize_amount, to_nanotons


@pytest.mark.parametrize("amount,expected", [
    ("0.5", "500000000"),
    ("1", "1000000000"),
    ("0", "0"),
    ("12.000000001", "12000000001"),
    (".5", "500000000"),
    ("3.", "3000000000"),
    (" 2.25 ", "2250000000"),
])
def test_decimal_strings_convert_exactly(amount, expected):
    assert to_nanotons(amount) == expected


def test_digits_past_ninth_place_are_truncated_not_rounded():
    assert to_nanotons("0.1234567895") == "123456789"
    assert to_nanotons("0.9999999999") == "999999999"
    assert to_nanotons("0.0000000009") == "0"


def test_large_amounts_keep_every_digit():
    amount = "123456789012345678901234567890.123456789"
    assert to_nanotons(amount) == "123456789012345678901234567890123456789"


def test_numbers_are_accepted():
    assert to_nanotons(2) == "2000000000"
    assert to_nanotons(0.5) == "500000000"
    assert to_nanotons(0.1) == "100000000"
    assert to_nanotons(Decimal("1.5")) == "1500000000"


def test_small_float_uses_plain_notation():
    assert normalize_amount(1e-05) == "0.00001"
    assert to_nanotons(1e-05) == "10000"


@pytest.mark.parametrize("amount", [
    "-1",
    "-0.5",
    "abc",
    "",
    "1e5",
    "1,5",
    "0x10",
    "1.2.3",
    float("nan"),
    float("inf"),
    -0.5,
    Decimal("Infinity"),
    True,
    None,
    [1],
])
def test_invalid_amounts_raise_conversion_error(amount):
    with pytest.raises(ConversionError) as exc_info:
        to_nanotons(amount)
    assert exc_info.value.error_code == "tonpay:amount:invalid"

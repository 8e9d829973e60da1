import pytest

from utils.functions.currency import convert, format_price, get_symbol

RATES = {
    "base": "USD",
    "rates": {"USD": 1, "EUR": 0.9, "INR": 83.0},
    "symbols": {"USD": "$", "EUR": "€", "INR": "₹"},
}


def test_convert_from_base():
    assert convert(100, "USD", "EUR", RATES) == pytest.approx(90)


def test_convert_between_non_base_currencies():
    assert convert(90, "EUR", "INR", RATES) == pytest.approx(8300)


def test_convert_without_rates_is_identity():
    assert convert(42, "USD", "EUR", None) == 42


def test_unknown_currency_uses_rate_of_one():
    assert convert(10, "USD", "XYZ", RATES) == 10


def test_symbols():
    assert get_symbol("EUR", RATES) == "€"
    assert get_symbol("XYZ", RATES) == "$"
    assert get_symbol("EUR", None) == "$"


def test_format_price():
    assert format_price(1234.5, "INR", RATES) == "₹1,234.50"

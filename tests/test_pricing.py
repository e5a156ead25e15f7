"""Tests for free-form price text parsing."""

import pytest

from pricing import find_currency, parse_amount, parse_price


@pytest.mark.parametrize(
    "text, amount, currency",
    [
        ("€12,50", "12.50", "€"),
        ("$1,234.56", "1234.56", "$"),
        ("12,50 €", "12.50", "€"),
        ("£ 99", "99", "£"),
        ("USD 19.99", "19.99", "USD"),
        ("19.99 eur", "19.99", "EUR"),
        ("1 234,50 €", "1234.50", "€"),
        ("Now $1,299.00 (was $1,499.00)", "1299.00", "$"),
        ("₹ 2499", "2499", "₹"),
    ],
)
def test_parse_price(text: str, amount: str, currency: str) -> None:
    price = parse_price(text)

    assert price is not None
    assert price.amount == amount
    assert price.currency == currency


def test_parse_price_keeps_normalized_raw_text() -> None:
    price = parse_price("  Sale:\n €12,50 \t")

    assert price is not None
    assert price.raw == "Sale: €12,50"


def test_symbol_wins_over_code() -> None:
    price = parse_price("USD $5.00")

    assert price is not None
    assert price.currency == "$"
    assert price.amount == "5.00"


def test_space_before_unrelated_digits_is_not_a_thousands_separator() -> None:
    price = parse_price("$12.99 15 items left")

    assert price is not None
    assert price.amount == "12.99"


@pytest.mark.parametrize("text", [None, "", "free shipping", "12.50", "$0.00", 42])
def test_parse_price_rejects(text) -> None:
    assert parse_price(text) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("19.99", "19.99"),
        (19.99, "19.99"),
        (20, "20"),
        ("1,234,567", "1234567"),
        ("12,50", "12.50"),
        (" 1 234.50 ", "1234.50"),
        ("abc", None),
        ("0", None),
        (True, None),
        (None, None),
    ],
)
def test_parse_amount(value, expected) -> None:
    assert parse_amount(value) == expected


def test_find_currency() -> None:
    assert find_currency("price in gbp") == "GBP"
    assert find_currency("¥1200 or JPY") == "¥"
    assert find_currency("no money here") is None

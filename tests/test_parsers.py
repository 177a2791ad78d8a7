"""Tests for date and amount parsers."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.utils.amount_parser import parse_amount
from ledgerflow.utils.date_parser import parse_date


def test_parse_absolute_date():
    """Test parsing ISO dates."""
    assert parse_date("2024-01-15") == date(2024, 1, 15)


def test_parse_standard_formats():
    """Test parsing common bank formats."""
    assert parse_date("01/15/2024") == date(2024, 1, 15)
    assert parse_date("January 15, 2024") == date(2024, 1, 15)


def test_parse_with_explicit_format():
    """Test that an explicit format is tried first."""
    assert parse_date("15/01/2024", "%d/%m/%Y") == date(2024, 1, 15)


def test_parse_ofx_timestamp():
    """Test OFX date stamps with time and zone."""
    assert parse_date("20240115120000[-5:EST]") == date(2024, 1, 15)
    assert parse_date("20240115") == date(2024, 1, 15)


def test_parse_invalid_date():
    """Test that garbage is refused."""
    with pytest.raises(ValueError):
        parse_date("not a date")
    with pytest.raises(ValueError):
        parse_date("   ")


@pytest.mark.parametrize(
    "text,expected",
    [
        ("123.45", Decimal("123.45")),
        ("$1,234.56", Decimal("1234.56")),
        ("-$50.00", Decimal("-50.00")),
        ("(75.10)", Decimal("-75.10")),
        ("20.00-", Decimal("-20.00")),
        ("7", Decimal("7.00")),
    ],
)
def test_parse_amount_formats(text, expected):
    """Test the amount formats banks emit."""
    assert parse_amount(text) == expected


def test_parse_amount_refuses_sub_cent():
    """Test that sub-cent precision is an error, not rounded."""
    with pytest.raises(ValueError, match="more than two decimal places"):
        parse_amount("10.005")


def test_parse_amount_invalid():
    """Test that non-numeric amounts are refused."""
    with pytest.raises(ValueError):
        parse_amount("abc")
    with pytest.raises(ValueError):
        parse_amount("")

"""Tests for date parsing and reporting periods."""

import pytest
from datetime import date, timedelta

from ledgerkit.utils.date_parser import PERIODS, get_date_range, parse_date


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    assert parse_date("2024-01-15") == date(2024, 1, 15)


def test_parse_standard_formats():
    """Test parsing various standard date formats."""
    assert parse_date("January 15, 2024") == date(2024, 1, 15)
    assert parse_date("15/01/2024") == date(2024, 1, 15)


@pytest.mark.parametrize(
    "text, offset",
    [("today", 0), ("Yesterday", -1), (" tomorrow ", 1), ("3 days ago", -3), ("1 day ago", -1)],
)
def test_parse_relative_dates(text, offset):
    assert parse_date(text) == date.today() + timedelta(days=offset)


@pytest.mark.parametrize("text", ["", "last invalid", "x days ago", "2024-13-45"])
def test_parse_invalid_date(text):
    with pytest.raises(ValueError, match="Could not parse date"):
        parse_date(text)


@pytest.mark.parametrize(
    "period, today, expected",
    [
        ("this-month", date(2024, 5, 17), (date(2024, 5, 1), date(2024, 5, 17))),
        ("last-month", date(2024, 5, 17), (date(2024, 4, 1), date(2024, 4, 30))),
        ("last-month", date(2024, 1, 10), (date(2023, 12, 1), date(2023, 12, 31))),
        ("last-month", date(2024, 3, 31), (date(2024, 2, 1), date(2024, 2, 29))),
        ("this-quarter", date(2024, 5, 17), (date(2024, 4, 1), date(2024, 5, 17))),
        ("last-quarter", date(2024, 5, 17), (date(2024, 1, 1), date(2024, 3, 31))),
        ("last-quarter", date(2024, 2, 1), (date(2023, 10, 1), date(2023, 12, 31))),
        ("this-year", date(2024, 5, 17), (date(2024, 1, 1), date(2024, 5, 17))),
        ("last-year", date(2024, 5, 17), (date(2023, 1, 1), date(2023, 12, 31))),
    ],
)
def test_get_date_range(period, today, expected):
    assert get_date_range(period, today) == expected


def test_get_date_range_defaults_to_today():
    """Test that the "this" periods end today when no date is given."""
    today = date.today()
    for period in PERIODS:
        start, end = get_date_range(period)
        assert start <= end
        if period.startswith("this-"):
            assert end == today
        else:
            assert end < today


def test_get_date_range_first_day_of_month():
    start, end = get_date_range("this-month", date(2024, 7, 1))
    assert start == end == date(2024, 7, 1)


def test_get_date_range_invalid_period():
    """Test get_date_range with invalid period."""
    with pytest.raises(ValueError, match="Unknown period"):
        get_date_range("this-week")

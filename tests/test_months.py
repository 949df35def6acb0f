from __future__ import annotations

from datetime import date, datetime

import pytest

from ledgerboard.errors import ValidationError
from ledgerboard.months import (
    add_months,
    days_in_month,
    format_year_month,
    is_year_month,
    iter_months,
    month_bounds,
    occurrence_date,
    parse_year_month,
)


def test_format_is_zero_padded():
    assert format_year_month(date(987, 3, 4)) == "0987-03"
    assert format_year_month(datetime(2025, 11, 30, 23, 59)) == "2025-11"


@pytest.mark.parametrize("raw", ["2025-3", "2025-13", "2025-00", "25-03", "", "2025/03", "2025-03-01"])
def test_parse_rejects_malformed_months(raw):
    assert not is_year_month(raw)
    with pytest.raises(ValidationError):
        parse_year_month(raw)


def test_string_order_matches_calendar_order():
    months = list(iter_months("2024-11", "2025-02"))

    assert months == ["2024-11", "2024-12", "2025-01", "2025-02"]
    assert months == sorted(months)


def test_add_months_crosses_years():
    assert add_months("2025-12", 1) == "2026-01"
    assert add_months("2025-01", -1) == "2024-12"
    assert add_months("2025-06", 18) == "2026-12"


def test_days_in_month_handles_leap_years():
    assert days_in_month("2024-02") == 29
    assert days_in_month("2025-02") == 28
    assert days_in_month("2025-04") == 30


def test_month_bounds_are_half_open():
    start, end = month_bounds("2025-12")

    assert start == datetime(2025, 12, 1)
    assert end == datetime(2026, 1, 1)


def test_occurrence_date_keeps_time_and_clamps_day():
    anchor = datetime(2025, 1, 31, 14, 45)

    assert occurrence_date(anchor, "2025-02") == datetime(2025, 2, 28, 14, 45)
    assert occurrence_date(anchor, "2025-07") == datetime(2025, 7, 31, 14, 45)

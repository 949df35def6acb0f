"""Year-month ("YYYY-MM") helpers.

Months are carried as zero-padded ``"YYYY-MM"`` strings so that plain string
comparison orders them chronologically.
"""

from __future__ import annotations

import re
from calendar import monthrange
from datetime import date, datetime
from typing import Iterator

from .errors import ValidationError

_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")


def format_year_month(value: date | datetime) -> str:
    """Return the ``YYYY-MM`` month a date falls in."""

    return f"{value.year:04d}-{value.month:02d}"


def parse_year_month(value: str) -> tuple[int, int]:
    """Split a ``YYYY-MM`` string into ``(year, month)``."""

    match = _YEAR_MONTH.match(value or "")
    if match is None:
        raise ValidationError(f"Invalid month: {value!r} (expected YYYY-MM)", field="month")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise ValidationError(f"Invalid month: {value!r}", field="month")
    return year, month


def is_year_month(value: str) -> bool:
    try:
        parse_year_month(value)
    except ValidationError:
        return False
    return True


def days_in_month(year_month: str) -> int:
    year, month = parse_year_month(year_month)
    return monthrange(year, month)[1]


def add_months(year_month: str, count: int) -> str:
    """Shift a month forwards (or backwards for negative ``count``)."""

    year, month = parse_year_month(year_month)
    index = year * 12 + (month - 1) + count
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def iter_months(start: str, end: str) -> Iterator[str]:
    """Yield every month from ``start`` to ``end`` inclusive."""

    cursor = start
    while cursor <= end:
        yield cursor
        cursor = add_months(cursor, 1)


def month_bounds(year_month: str) -> tuple[datetime, datetime]:
    """Return ``[start, next_start)`` naive datetimes for a month."""

    year, month = parse_year_month(year_month)
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def occurrence_date(anchor: datetime, year_month: str) -> datetime:
    """Project an anchor's day-of-month and time onto another month.

    The day is clamped to the month's length, so an anchor on the 31st lands on
    the 28th/29th in February and the 30th in April.
    """

    year, month = parse_year_month(year_month)
    day = min(anchor.day, monthrange(year, month)[1])
    return anchor.replace(year=year, month=month, day=day)


__all__ = [
    "add_months",
    "days_in_month",
    "format_year_month",
    "is_year_month",
    "iter_months",
    "month_bounds",
    "occurrence_date",
    "parse_year_month",
]

"""
Calendar-Month Buckets

A bucket is one calendar month, keyed "YYYY-MM" with the month always
zero-padded. Month arithmetic works on a single month index
(year * 12 + month - 1) so year boundaries need no special cases:
December 2024 minus 5 months is July 2024, January minus 1 is the
previous December.
"""

from datetime import datetime, timezone
from typing import Optional


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by delta months."""
    index = year * 12 + (month - 1) + delta
    new_year, month_index = divmod(index, 12)
    return new_year, month_index + 1


def month_key(year: int, month: int) -> str:
    """Bucket key, e.g. (2024, 3) -> "2024-03"."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range: {month}")
    return f"{year:04d}-{month:02d}"


def parse_month_key(key: str) -> tuple[int, int]:
    year, month = key.split("-")
    return int(year), int(month)


def month_label(key: str) -> str:
    """Display label, e.g. "2024-03" -> "March 2024"."""
    year, month = parse_month_key(key)
    return datetime(year, month, 1).strftime("%B %Y")


def window_start(end: datetime, months: int) -> datetime:
    """
    First instant of the window ending at end and spanning months buckets.

    Midnight on the first day of the month (months - 1) before end's month.
    """
    if months < 1:
        raise ValueError(f"months must be at least 1, got {months}")
    year, month = shift_month(end.year, end.month, -(months - 1))
    return datetime(year, month, 1, tzinfo=end.tzinfo or timezone.utc)


def month_sequence(start: datetime, months: int) -> list[str]:
    """months consecutive bucket keys starting at start's month."""
    return [
        month_key(*shift_month(start.year, start.month, offset))
        for offset in range(months)
    ]


def resolve_window(
    start: Optional[datetime],
    end: Optional[datetime],
    months: int,
    now: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    """
    Effective (start, end) of a monthly report.

    end defaults to now; start, when absent, is derived from end.
    """
    end = end or now or datetime.now(timezone.utc)
    # Store buckets are UTC calendar months
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    else:
        end = end.astimezone(timezone.utc)
    if start is None:
        start = window_start(end, months)
    return start, end

"""Half-open time interval helpers"""

from datetime import date, datetime, time, timezone
from typing import Tuple, Union

from poolbook.services.exceptions import ValidationError

# Inclusive last instant of a UTC day used by day filters
DAY_END = time(23, 59, 59, 999000)


def to_utc(value: datetime) -> datetime:
    """
    Normalize an instant to naive UTC, the storage convention.

    Naive values are taken to already be UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """True iff [start_a, end_a) and [start_b, end_b) intersect. Touching endpoints do not."""
    return to_utc(start_a) < to_utc(end_b) and to_utc(start_b) < to_utc(end_a)


def is_valid_range(start: datetime, end: datetime) -> bool:
    return to_utc(end) > to_utc(start)


def parse_day(value: Union[str, date]) -> date:
    """
    Parse a YYYY-MM-DD day token.

    Raises:
        ValidationError: If the token is not a calendar date
    """
    if isinstance(value, datetime):
        return to_utc(value).date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")


def day_bounds(day: Union[str, date]) -> Tuple[datetime, datetime]:
    """UTC boundaries [00:00:00.000, 23:59:59.999] of a calendar day"""
    day = parse_day(day)
    return datetime.combine(day, time.min), datetime.combine(day, DAY_END)


def utc_today() -> date:
    """Current UTC calendar day"""
    return datetime.now(timezone.utc).date()

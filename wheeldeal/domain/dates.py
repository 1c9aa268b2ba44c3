"""Calendar-day normalization and the one overlap rule.

Every place that compares reservation ranges goes through ``overlaps``.
Ranges are inclusive on both ends, so a range ending on day D and another
starting on day D overlap (no same-day handover).
"""
from datetime import date, datetime

from wheeldeal.core.errors import ValidationError


def to_day(value) -> date:
    """Normalize a date-like value to a plain calendar ``date``.

    Accepts ``date``, ``datetime`` (naive or aware; the calendar date as
    written is kept, no timezone conversion) and ISO strings such as
    ``2024-06-05`` or ``2024-06-05T23:00:00.000Z`` (only the date part counts).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip().split("T", 1)[0].split(" ", 1)[0]
        try:
            return date.fromisoformat(raw)
        except ValueError:
            raise ValidationError(f"Invalid date: {value!r}", kind="invalid_date")
    raise ValidationError(f"Invalid date: {value!r}", kind="invalid_date")


def ensure_range(start, end) -> tuple[date, date]:
    """Normalize both ends and reject inverted ranges."""
    start_day, end_day = to_day(start), to_day(end)
    if end_day < start_day:
        raise ValidationError(
            f"End date {end_day.isoformat()} is before start date {start_day.isoformat()}",
            kind="range_invalid",
        )
    return start_day, end_day


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    a_start, a_end = to_day(a_start), to_day(a_end)
    b_start, b_end = to_day(b_start), to_day(b_end)
    return not (a_end < b_start or a_start > b_end)


def days_inclusive(start, end) -> int:
    return (to_day(end) - to_day(start)).days + 1

"""Parse the date/time phrasings accepted by the booking endpoints.

Every value comes back as a timezone-aware UTC ``datetime``. No timezone is
inferred: naive inputs are read as UTC and explicit offsets are converted.
"""

from __future__ import annotations

from datetime import UTC, datetime
import re

from calendar_booking.services.booking_models import (
    DEFAULT_DURATION_MINUTES,
    TimeInterval,
    ensure_utc,
)
from calendar_booking.services.errors import InvalidFormat, ValidationError

EXAMPLE_FORMAT = "August 9 at 6am"

_MONTHS = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}
_MONTH_ABBREVIATIONS = {name[:3]: number for name, number in _MONTHS.items()} | {"sept": 9}

_AT_PATTERN = re.compile(
    r"^(?P<month>[a-z]+)\.?\s+(?P<day>\d{1,2})(?:st|nd|rd|th)?"
    r"(?:,?\s+(?P<year>\d{4}))?"
    r"\s+at\s+(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<meridiem>am|pm)$",
    re.IGNORECASE,
)
_ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")
_STRPTIME_FORMATS = (
    "%B %d %Y %I:%M %p",
    "%b %d %Y %I:%M %p",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %I:%M %p",
)


def parse_date_time(raw_value: str, *, now: datetime | None = None) -> datetime:
    cleaned = " ".join((raw_value or "").split())
    if not cleaned:
        raise _invalid_format(raw_value)

    parsed = _parse_at_phrase(cleaned, now=now)
    if parsed is None:
        parsed = _parse_iso(cleaned)
    if parsed is None:
        parsed = _parse_with_formats(cleaned)
    if parsed is None:
        raise _invalid_format(raw_value)
    return ensure_utc(parsed)


def normalize_interval(
    raw_value: str,
    duration_minutes: int = DEFAULT_DURATION_MINUTES,
    *,
    now: datetime | None = None,
) -> TimeInterval:
    validate_duration(duration_minutes)
    start = parse_date_time(raw_value, now=now)
    return TimeInterval.from_start(start, duration_minutes)


def validate_duration(duration_minutes: int) -> None:
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError("duration must be a positive integer number of minutes.")
    if duration_minutes <= 0:
        raise ValidationError("duration must be a positive integer number of minutes.")


def _parse_at_phrase(value: str, *, now: datetime | None) -> datetime | None:
    match = _AT_PATTERN.match(value)
    if not match:
        return None

    month = _resolve_month(match.group("month"))
    if month is None:
        raise _invalid_format(value)

    hour = int(match.group("hour"))
    minute = int(match.group("minute") or 0)
    if not 1 <= hour <= 12:
        raise _invalid_format(value)
    hour = hour % 12
    if match.group("meridiem").lower() == "pm":
        hour += 12

    raw_year = match.group("year")
    year = int(raw_year) if raw_year else (now or datetime.now(UTC)).year
    try:
        return datetime(year, month, int(match.group("day")), hour, minute, tzinfo=UTC)
    except ValueError as exc:
        raise _invalid_format(value) from exc


def _parse_iso(value: str) -> datetime | None:
    if not _ISO_PATTERN.match(value):
        return None
    normalized = value.replace("Z", "+00:00").replace("z", "+00:00")
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _parse_with_formats(value: str) -> datetime | None:
    without_commas = " ".join(value.replace(",", " ").split())
    for date_format in _STRPTIME_FORMATS:
        try:
            return datetime.strptime(without_commas, date_format)
        except ValueError:
            continue
    return None


def _resolve_month(raw_month: str) -> int | None:
    lowered = raw_month.lower()
    return _MONTHS.get(lowered) or _MONTH_ABBREVIATIONS.get(lowered)


def _invalid_format(raw_value: str) -> InvalidFormat:
    return InvalidFormat(
        f'Invalid date format: "{raw_value}". Please use a format like "{EXAMPLE_FORMAT}".',
        details=(
            "Accepted formats: 'August 9 at 6am', 'Aug 9, 2024 6:00 AM', "
            "'2024-08-09 06:00', '08/09/2024 6:00 AM'."
        ),
    )

from datetime import UTC, datetime

import pytest

from calendar_booking.services.datetime_normalizer import (
    normalize_interval,
    parse_date_time,
)
from calendar_booking.services.errors import InvalidFormat, ValidationError

_NOW_2025 = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def test_at_phrase_defaults_to_current_utc_year() -> None:
    year_before = datetime.now(UTC).year
    parsed = parse_date_time("August 9 at 6am")
    year_after = datetime.now(UTC).year

    assert parsed.year in {year_before, year_after}
    assert (parsed.month, parsed.day, parsed.hour, parsed.minute) == (8, 9, 6, 0)


def test_at_phrase_takes_year_from_new_years_eve_reference() -> None:
    now = datetime(2030, 12, 31, 23, 59, 59, tzinfo=UTC)

    assert parse_date_time("August 9 at 6am", now=now) == datetime(2030, 8, 9, 6, 0, tzinfo=UTC)


def test_at_phrase_uses_year_of_reference_time() -> None:
    assert parse_date_time("August 9 at 6am", now=_NOW_2025) == datetime(2025, 8, 9, 6, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("raw_value", "expected"),
    [
        ("Aug 9 at 6:30pm", datetime(2025, 8, 9, 18, 30, tzinfo=UTC)),
        ("august 9th at 6 PM", datetime(2025, 8, 9, 18, 0, tzinfo=UTC)),
        ("January 1 at 12am", datetime(2025, 1, 1, 0, 0, tzinfo=UTC)),
        ("January 1 at 12pm", datetime(2025, 1, 1, 12, 0, tzinfo=UTC)),
        ("August 9, 2024 at 6am", datetime(2024, 8, 9, 6, 0, tzinfo=UTC)),
    ],
)
def test_at_phrase_variants(raw_value: str, expected: datetime) -> None:
    assert parse_date_time(raw_value, now=_NOW_2025) == expected


@pytest.mark.parametrize(
    ("raw_value", "expected"),
    [
        ("August 9, 2024 6:00 AM", datetime(2024, 8, 9, 6, 0, tzinfo=UTC)),
        ("Aug 9 2024 6:00 PM", datetime(2024, 8, 9, 18, 0, tzinfo=UTC)),
        ("2024-08-09 06:00", datetime(2024, 8, 9, 6, 0, tzinfo=UTC)),
        ("08/09/2024 6:15 PM", datetime(2024, 8, 9, 18, 15, tzinfo=UTC)),
        ("2024-08-09T06:00:00Z", datetime(2024, 8, 9, 6, 0, tzinfo=UTC)),
        ("2024-08-09T08:00:00+02:00", datetime(2024, 8, 9, 6, 0, tzinfo=UTC)),
        ("2024-08-09T06:00:00.000Z", datetime(2024, 8, 9, 6, 0, tzinfo=UTC)),
    ],
)
def test_explicit_year_formats(raw_value: str, expected: datetime) -> None:
    assert parse_date_time(raw_value, now=_NOW_2025) == expected


def test_iso_output_parses_back_to_same_instant() -> None:
    first = parse_date_time("2024-08-09T06:00:00Z")

    assert parse_date_time(first.isoformat()) == first


@pytest.mark.parametrize(
    "raw_value",
    ["next tuesday maybe", "", "February 30 at 6am", "August 9 at 13pm", "Smarch 3 at 6am", "2024-08-09"],
)
def test_unrecognized_input_raises_invalid_format(raw_value: str) -> None:
    with pytest.raises(InvalidFormat) as exc_info:
        parse_date_time(raw_value, now=_NOW_2025)

    assert f'"{raw_value}"' in exc_info.value.message
    assert "August 9 at 6am" in exc_info.value.message


def test_normalize_interval_adds_duration() -> None:
    interval = normalize_interval("August 9 at 6am", 90, now=_NOW_2025)

    assert interval.start == datetime(2025, 8, 9, 6, 0, tzinfo=UTC)
    assert interval.end == datetime(2025, 8, 9, 7, 30, tzinfo=UTC)


@pytest.mark.parametrize("duration", [0, -30])
def test_normalize_interval_rejects_non_positive_duration(duration: int) -> None:
    with pytest.raises(ValidationError, match="positive integer"):
        normalize_interval("August 9 at 6am", duration, now=_NOW_2025)


def test_normalize_interval_rejects_duration_past_calendar_range() -> None:
    with pytest.raises(ValidationError, match="out of range"):
        normalize_interval("August 9 at 6am", 1_000_000_000_000, now=_NOW_2025)

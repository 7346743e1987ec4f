"""Brute-force search for open one-hour business slots.

Candidates are 09:00-16:00 UTC starts on the seven days beginning with the
requested date, weekends skipped, visited in chronological order with one
calendar query each (56 queries at most).
"""

from __future__ import annotations

from datetime import UTC, datetime, time, timedelta
import logging

from calendar_booking.services.availability_service import AvailabilityService
from calendar_booking.services.booking_models import SlotCandidate, TimeInterval, ensure_utc
from calendar_booking.services.errors import ProviderUnavailable

logger = logging.getLogger(__name__)

MAX_ALTERNATIVE_SLOTS = 5
SEARCH_DAYS = 7
FIRST_SLOT_HOUR = 9
LAST_SLOT_HOUR = 16
SLOT_DURATION_MINUTES = 60
_WEEKEND_DAYS = frozenset({5, 6})


def iter_candidate_intervals(requested_start: datetime):
    requested_date = ensure_utc(requested_start).date()
    for day_offset in range(SEARCH_DAYS):
        check_date = requested_date + timedelta(days=day_offset)
        if check_date.weekday() in _WEEKEND_DAYS:
            continue
        for hour in range(FIRST_SLOT_HOUR, LAST_SLOT_HOUR + 1):
            slot_start = datetime.combine(check_date, time(hour=hour), tzinfo=UTC)
            yield TimeInterval.from_start(slot_start, SLOT_DURATION_MINUTES)


def find_alternative_slots(
    availability: AvailabilityService,
    requested_start: datetime,
    *,
    max_slots: int = MAX_ALTERNATIVE_SLOTS,
) -> list[SlotCandidate]:
    alternatives: list[SlotCandidate] = []
    if max_slots <= 0:
        return alternatives

    logger.info("Looking for alternative slots from=%s", ensure_utc(requested_start).date())
    for candidate in iter_candidate_intervals(ensure_utc(requested_start)):
        try:
            result = availability.check_interval(candidate)
        except ProviderUnavailable as exc:
            logger.warning(
                "Skipping candidate slot start=%s error=%s",
                candidate.start.isoformat(),
                exc.message,
            )
            continue
        if not result.available:
            continue
        alternatives.append(
            SlotCandidate(
                start=candidate.start,
                end=candidate.end,
                display_label=format_display_label(candidate.start),
            ),
        )
        if len(alternatives) >= max_slots:
            break

    logger.info("Found %d alternative slots", len(alternatives))
    return alternatives


def format_display_label(value: datetime) -> str:
    """Render ``value`` like ``August 11th 2025, 9:00 AM``."""
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{value:%B} {_ordinal(value.day)} {value.year}, {hour}:{value.minute:02d} {meridiem}"


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"

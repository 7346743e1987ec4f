from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
import logging

from calendar_booking.services.booking_models import (
    DEFAULT_DURATION_MINUTES,
    AvailabilityResult,
    CalendarEvent,
    TimeInterval,
)
from calendar_booking.services.datetime_normalizer import normalize_interval
from calendar_booking.services.errors import ValidationError
from calendar_booking.services.providers import CalendarProvider

logger = logging.getLogger(__name__)


def find_conflicts(
    interval: TimeInterval,
    events: Iterable[CalendarEvent],
) -> list[CalendarEvent]:
    """Events overlapping ``interval``; an event ending exactly at its start is free."""
    return [
        event
        for event in events
        if interval.overlaps(event)
    ]


class AvailabilityService:
    def __init__(self, calendar: CalendarProvider) -> None:
        self.calendar = calendar

    def check(
        self,
        raw_date_time: str,
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
        *,
        now: datetime | None = None,
    ) -> AvailabilityResult:
        interval = normalize_interval(raw_date_time, duration_minutes, now=now)
        return self.check_interval(interval)

    def check_interval(self, interval: TimeInterval) -> AvailabilityResult:
        events = self.calendar.list_events(interval)
        conflicts = find_conflicts(interval, events)
        logger.info(
            "Availability checked start=%s end=%s available=%s conflicts=%d",
            interval.start.isoformat(),
            interval.end.isoformat(),
            not conflicts,
            len(conflicts),
        )
        return AvailabilityResult(
            requested_slot=interval,
            conflicting_events=tuple(conflicts),
        )

    def upcoming_events(self, days: int = 7, *, now: datetime | None = None) -> list[CalendarEvent]:
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError("days must be a positive integer.")
        start = now or datetime.now(UTC)
        try:
            end = start + timedelta(days=days)
        except OverflowError as exc:
            raise ValidationError("days is out of range.", details=f"days={days}") from exc
        window = TimeInterval(start=start, end=end)
        return sorted(self.calendar.list_events(window), key=lambda event: event.start)

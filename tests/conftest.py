from datetime import datetime
from typing import Any

import pytest

from calendar_booking.services.booking_models import CalendarEvent, EventSpec, TimeInterval
from calendar_booking.services.errors import MailError, ProviderUnavailable
from calendar_booking.services.providers import CalendarProvider, MailProvider


class FakeCalendarProvider(CalendarProvider):
    """Returns every stored event for any window, like a coarse calendar view."""

    def __init__(self) -> None:
        self.events: list[CalendarEvent] = []
        self.list_calls: list[TimeInterval] = []
        self.created: list[EventSpec] = []
        self.failing_starts: set[datetime] = set()
        self.fail_all = False

    def add_event(self, subject: str, start: datetime, end: datetime) -> CalendarEvent:
        event = CalendarEvent(
            id=f"existing-{len(self.events) + 1}",
            subject=subject,
            start=start,
            end=end,
        )
        self.events.append(event)
        return event

    def list_events(self, interval: TimeInterval) -> list[CalendarEvent]:
        self.list_calls.append(interval)
        if self.fail_all or interval.start in self.failing_starts:
            raise ProviderUnavailable("Microsoft Graph API HTTP 503: Service Unavailable")
        return list(self.events)

    def create_event(self, spec: EventSpec) -> CalendarEvent:
        self.created.append(spec)
        event = CalendarEvent(
            id=f"event-{len(self.created)}",
            subject=spec.subject,
            start=spec.interval.start,
            end=spec.interval.end,
            web_link=f"https://outlook.office365.com/calendar/item/event-{len(self.created)}",
        )
        self.events.append(event)
        return event

    def list_calendars(self) -> list[dict[str, str]]:
        return [{"name": "Calendar", "id": "calendar-1"}]


class FakeMailProvider(MailProvider):
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = False

    def send_mail(self, message: dict[str, Any]) -> None:
        if self.fail:
            raise MailError("Failed to send email: Microsoft Graph API HTTP 403: Access denied")
        self.sent.append(message)


@pytest.fixture
def calendar() -> FakeCalendarProvider:
    return FakeCalendarProvider()


@pytest.fixture
def mail() -> FakeMailProvider:
    return FakeMailProvider()


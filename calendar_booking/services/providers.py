from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from calendar_booking.services.booking_models import CalendarEvent, EventSpec, TimeInterval


class CalendarProvider(ABC):
    @abstractmethod
    def list_events(self, interval: TimeInterval) -> list[CalendarEvent]:
        raise NotImplementedError

    @abstractmethod
    def create_event(self, spec: EventSpec) -> CalendarEvent:
        raise NotImplementedError

    @abstractmethod
    def list_calendars(self) -> list[dict[str, str]]:
        raise NotImplementedError


class MailProvider(ABC):
    @abstractmethod
    def send_mail(self, message: dict[str, Any]) -> None:
        raise NotImplementedError

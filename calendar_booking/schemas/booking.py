from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from calendar_booking.services.booking_models import (
    AvailabilityResult,
    CalendarEvent,
    SlotCandidate,
    TimeInterval,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeSlot(CamelModel):
    start: datetime
    end: datetime

    @classmethod
    def from_interval(cls, interval: TimeInterval) -> TimeSlot:
        return cls(start=interval.start, end=interval.end)


class EventSummary(CamelModel):
    id: str | None = None
    subject: str
    start: datetime
    end: datetime
    web_link: str | None = None
    location: str | None = None

    @classmethod
    def from_event(cls, event: CalendarEvent) -> EventSummary:
        return cls(
            id=event.id or None,
            subject=event.subject,
            start=event.start,
            end=event.end,
            web_link=event.web_link,
            location=event.location,
        )


class AlternativeSlot(CamelModel):
    start: datetime
    end: datetime
    display_label: str

    @classmethod
    def from_candidate(cls, candidate: SlotCandidate) -> AlternativeSlot:
        return cls(
            start=candidate.start,
            end=candidate.end,
            display_label=candidate.display_label,
        )


class CheckAvailabilityRequest(CamelModel):
    date_time: str | None = None
    duration: int = 60
    user_id: str | None = None


class AvailabilityResponse(CamelModel):
    available: bool
    requested_slot: TimeSlot
    conflicting_events: list[EventSummary] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: AvailabilityResult) -> AvailabilityResponse:
        return cls(
            available=result.available,
            requested_slot=TimeSlot.from_interval(result.requested_slot),
            conflicting_events=[EventSummary.from_event(event) for event in result.conflicting_events],
        )


class BookAppointmentRequest(CamelModel):
    """Body of POST /book-appointment.

    Interactive mode reads ``userId``/``startTime``/``endTime``; service mode
    reads ``dateTime``/``duration``. The remaining fields are shared.
    """

    user_id: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    date_time: str | None = None
    duration: int = 60
    subject: str | None = None
    attendee_email: str | None = None
    attendee_name: str | None = None


class SmartBookRequest(CamelModel):
    date_time: str | None = None
    subject: str | None = None
    duration: int = 60
    attendee_email: str | None = None
    attendee_name: str | None = None
    user_id: str | None = None


class BookingResponse(CamelModel):
    success: bool
    message: str
    event_id: str | None = None
    event_url: str | None = None
    event: EventSummary | None = None
    conflicting_events: list[EventSummary] | None = None
    alternatives: list[AlternativeSlot] | None = None
    suggestion: str | None = None


class UpcomingEventsResponse(CamelModel):
    events: list[EventSummary] = Field(default_factory=list)
    count: int = 0


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None

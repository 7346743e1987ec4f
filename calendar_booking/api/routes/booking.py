import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from calendar_booking.api.dependencies import get_calendar_access_resolver
from calendar_booking.core.config import get_settings
from calendar_booking.schemas.booking import (
    AlternativeSlot,
    AvailabilityResponse,
    BookAppointmentRequest,
    BookingResponse,
    CheckAvailabilityRequest,
    EventSummary,
    SmartBookRequest,
    UpcomingEventsResponse,
)
from calendar_booking.services.availability_service import AvailabilityService
from calendar_booking.services.booking_models import (
    BookingConflict,
    BookingRequest,
    TimeInterval,
)
from calendar_booking.services.booking_service import BookingService
from calendar_booking.services.calendar_access import CalendarAccessResolver
from calendar_booking.services.datetime_normalizer import (
    normalize_interval,
    parse_date_time,
    validate_duration,
)
from calendar_booking.services.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["booking"])

_BOOKED_MESSAGE = "Appointment booked successfully!"
_UNAVAILABLE_MESSAGE = "The requested time slot is not available."


@router.post("/book-appointment")
def book_appointment(
    payload: BookAppointmentRequest,
    resolver: CalendarAccessResolver = Depends(get_calendar_access_resolver),
) -> JSONResponse:
    if get_settings().is_service_mode:
        return _book_from_date_time(payload, resolver)
    return _book_for_user(payload, resolver)


@router.post("/check-availability")
def check_availability(
    payload: CheckAvailabilityRequest,
    resolver: CalendarAccessResolver = Depends(get_calendar_access_resolver),
) -> JSONResponse:
    """Report whether ``dateTime`` plus ``duration`` minutes is free.

    With ``AUTH_MODE=interactive`` the body must carry the ``userId`` shown
    after ``/auth``; without it the request is rejected with 401. Service mode
    ignores ``userId`` and checks the ``USER_EMAIL`` mailbox.
    """
    date_time = _require_text(payload.date_time, "dateTime")
    normalize_interval(date_time, payload.duration)
    access = resolver.resolve(payload.user_id)
    result = AvailabilityService(access.calendar).check(date_time, payload.duration)
    return _json_response(AvailabilityResponse.from_result(result))


@router.post("/smart-book")
def smart_book(
    payload: SmartBookRequest,
    resolver: CalendarAccessResolver = Depends(get_calendar_access_resolver),
) -> JSONResponse:
    booking = BookingRequest(
        raw_date_time=_require_text(payload.date_time, "dateTime"),
        subject=_require_text(payload.subject, "subject"),
        duration_minutes=payload.duration,
        attendee_email=payload.attendee_email,
        attendee_name=payload.attendee_name,
    )
    normalize_interval(booking.raw_date_time, booking.duration_minutes)
    access = resolver.resolve(payload.user_id)
    service = BookingService(access.calendar, access.mail, search_alternatives=True)
    result = service.book(booking)
    if isinstance(result, BookingConflict):
        alternatives = [AlternativeSlot.from_candidate(slot) for slot in result.alternatives]
        return _json_response(
            BookingResponse(
                success=False,
                message=_UNAVAILABLE_MESSAGE,
                conflicting_events=[EventSummary.from_event(event) for event in result.conflicting_events],
                alternatives=alternatives,
                suggestion=_build_suggestion(alternatives),
            ),
        )
    return _json_response(
        BookingResponse(
            success=True,
            message=_BOOKED_MESSAGE,
            event=EventSummary.from_event(result.event),
        ),
    )


@router.get("/upcoming-events")
def upcoming_events(
    days: int = Query(default=7),
    user_id: str | None = Query(default=None, alias="userId"),
    resolver: CalendarAccessResolver = Depends(get_calendar_access_resolver),
) -> JSONResponse:
    if days <= 0:
        raise ValidationError("days must be a positive integer.")
    access = resolver.resolve(user_id)
    events = AvailabilityService(access.calendar).upcoming_events(days)
    return _json_response(
        UpcomingEventsResponse(
            events=[EventSummary.from_event(event) for event in events],
            count=len(events),
        ),
    )


def _book_for_user(payload: BookAppointmentRequest, resolver: CalendarAccessResolver) -> JSONResponse:
    start = parse_date_time(_require_text(payload.start_time, "startTime"))
    subject = _require_text(payload.subject, "subject")
    if payload.end_time and payload.end_time.strip():
        interval = TimeInterval(start=start, end=parse_date_time(payload.end_time))
    else:
        validate_duration(payload.duration)
        interval = TimeInterval.from_start(start, payload.duration)

    access = resolver.resolve(payload.user_id)
    logger.info("Starting booking process start=%s", interval.start.isoformat())
    service = BookingService(access.calendar, access.mail, search_alternatives=True)
    result = service.book_interval(
        interval,
        subject=subject,
        attendee_email=payload.attendee_email,
        attendee_name=payload.attendee_name,
    )
    if isinstance(result, BookingConflict):
        return _json_response(
            BookingResponse(
                success=False,
                message=_UNAVAILABLE_MESSAGE,
                conflicting_events=[EventSummary.from_event(event) for event in result.conflicting_events],
                alternatives=[AlternativeSlot.from_candidate(slot) for slot in result.alternatives],
            ),
        )
    return _json_response(
        BookingResponse(
            success=True,
            message=_BOOKED_MESSAGE,
            event_id=result.event.id,
            event_url=result.event.web_link,
        ),
    )


def _book_from_date_time(payload: BookAppointmentRequest, resolver: CalendarAccessResolver) -> JSONResponse:
    booking = BookingRequest(
        raw_date_time=_require_text(payload.date_time, "dateTime"),
        subject=_require_text(payload.subject, "subject"),
        duration_minutes=payload.duration,
        attendee_email=payload.attendee_email,
        attendee_name=payload.attendee_name,
    )
    normalize_interval(booking.raw_date_time, booking.duration_minutes)
    access = resolver.resolve(payload.user_id)
    result = BookingService(access.calendar, access.mail).book(booking)
    if isinstance(result, BookingConflict):
        return _json_response(
            BookingResponse(
                success=False,
                message="This time slot is not available. Please try a different time.",
                conflicting_events=[EventSummary.from_event(event) for event in result.conflicting_events],
            ),
            status_code=status.HTTP_409_CONFLICT,
        )
    return _json_response(
        BookingResponse(
            success=True,
            message=_BOOKED_MESSAGE,
            event=EventSummary.from_event(result.event),
        ),
    )


def _build_suggestion(alternatives: list[AlternativeSlot]) -> str:
    if not alternatives:
        return "No open business-hour slots were found in the next 7 days."
    return f"The next available slot is {alternatives[0].display_label} (UTC)."


def _require_text(value: str | None, field_name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field_name} is required.")
    return cleaned


def _json_response(model: BaseModel, *, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        content=model.model_dump(mode="json", by_alias=True, exclude_none=True),
        status_code=status_code,
    )

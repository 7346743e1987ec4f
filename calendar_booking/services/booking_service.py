from __future__ import annotations

from datetime import datetime
from html import escape
import logging

from calendar_booking.services.availability_service import AvailabilityService
from calendar_booking.services.booking_models import (
    BookingConflict,
    BookingRequest,
    BookingResult,
    BookingSuccess,
    CalendarEvent,
    EventSpec,
    TimeInterval,
)
from calendar_booking.services.datetime_normalizer import normalize_interval
from calendar_booking.services.errors import MailError, ValidationError
from calendar_booking.services.outlook_mail_client import build_html_message
from calendar_booking.services.providers import CalendarProvider, MailProvider
from calendar_booking.services.slot_search import find_alternative_slots, format_display_label

logger = logging.getLogger(__name__)


class BookingService:
    def __init__(
        self,
        calendar: CalendarProvider,
        mail: MailProvider | None = None,
        *,
        search_alternatives: bool = False,
    ) -> None:
        self.calendar = calendar
        self.mail = mail
        self.search_alternatives = search_alternatives
        self.availability = AvailabilityService(calendar)

    def book(self, booking: BookingRequest, *, now: datetime | None = None) -> BookingResult:
        logger.info("Booking received subject=%r", booking.subject)
        if not (booking.raw_date_time or "").strip():
            raise ValidationError("dateTime is required.")
        if not (booking.subject or "").strip():
            raise ValidationError("subject is required.")
        interval = normalize_interval(booking.raw_date_time, booking.duration_minutes, now=now)
        return self.book_interval(
            interval,
            subject=booking.subject,
            attendee_email=booking.attendee_email,
            attendee_name=booking.attendee_name,
        )

    def book_interval(
        self,
        interval: TimeInterval,
        *,
        subject: str,
        attendee_email: str | None = None,
        attendee_name: str | None = None,
    ) -> BookingResult:
        subject = (subject or "").strip()
        if not subject:
            raise ValidationError("subject is required.")

        availability = self.availability.check_interval(interval)
        if not availability.available:
            logger.info("Requested slot unavailable start=%s", interval.start.isoformat())
            alternatives = ()
            if self.search_alternatives:
                alternatives = tuple(find_alternative_slots(self.availability, interval.start))
            return BookingConflict(
                conflicting_events=availability.conflicting_events,
                alternatives=alternatives,
            )

        event = self.calendar.create_event(
            EventSpec(
                subject=subject,
                interval=interval,
                attendee_email=attendee_email,
                attendee_name=attendee_name,
                body_html=_build_event_body(
                    subject=subject,
                    interval=interval,
                    attendee_email=attendee_email,
                    attendee_name=attendee_name,
                ),
            ),
        )
        self._notify_attendee(
            event=event,
            interval=interval,
            attendee_email=attendee_email,
            attendee_name=attendee_name,
        )
        logger.info("Booking completed event_id=%s", event.id)
        return BookingSuccess(event=event)

    def _notify_attendee(
        self,
        *,
        event: CalendarEvent,
        interval: TimeInterval,
        attendee_email: str | None,
        attendee_name: str | None,
    ) -> None:
        if self.mail is None or not (attendee_email or "").strip():
            return
        message = build_html_message(
            subject=f"Appointment Confirmed - {event.subject}",
            html_content=_build_confirmation_body(
                subject=event.subject,
                interval=interval,
                attendee_name=attendee_name or attendee_email or "",
            ),
            to_email=attendee_email.strip(),
            to_name=attendee_name,
        )
        try:
            self.mail.send_mail(message)
        except MailError:
            logger.exception("Confirmation email failed event_id=%s", event.id)


def _format_time_range(interval: TimeInterval) -> str:
    end_hour = interval.end.hour % 12 or 12
    end_meridiem = "AM" if interval.end.hour < 12 else "PM"
    return (
        f"{format_display_label(interval.start)} - "
        f"{end_hour}:{interval.end.minute:02d} {end_meridiem} UTC"
    )


def _build_event_body(
    *,
    subject: str,
    interval: TimeInterval,
    attendee_email: str | None,
    attendee_name: str | None,
) -> str:
    lines = [
        "<h3>Meeting Details</h3>",
        f"<p><strong>Subject:</strong> {escape(subject)}</p>",
    ]
    if attendee_name:
        lines.append(f"<p><strong>Attendee:</strong> {escape(attendee_name)}</p>")
    if attendee_email:
        lines.append(f"<p><strong>Email:</strong> {escape(attendee_email)}</p>")
    lines.append(f"<p><strong>Time:</strong> {escape(_format_time_range(interval))}</p>")
    return "\n".join(lines)


def _build_confirmation_body(*, subject: str, interval: TimeInterval, attendee_name: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #28a745;">Appointment Confirmed!</h2>'
        f"<p>Dear <strong>{escape(attendee_name)}</strong>,</p>"
        "<p>Thank you for booking an appointment with us!</p>"
        '<div style="background: #f8f9fa; padding: 20px; border-radius: 8px;">'
        f"<p><strong>Subject:</strong> {escape(subject)}</p>"
        f"<p><strong>Date &amp; Time:</strong> {escape(_format_time_range(interval))}</p>"
        f"<p><strong>Duration:</strong> {interval.duration_minutes} minutes</p>"
        "</div>"
        "<p>We look forward to meeting with you.</p>"
        "</div>"
    )

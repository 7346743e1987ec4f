from datetime import UTC, datetime
import logging
import re
from typing import Any
from urllib import parse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from calendar_booking.services.booking_models import CalendarEvent, EventSpec, TimeInterval
from calendar_booking.services.graph_api_client import GraphApiClient, GraphApiError
from calendar_booking.services.providers import CalendarProvider

logger = logging.getLogger(__name__)

_FRACTIONAL_SECONDS_PATTERN = re.compile(r"(\.\d{6})\d+")


class CalendarNotFoundError(GraphApiError):
    pass


class OutlookCalendarClient(CalendarProvider):
    def __init__(self, graph: GraphApiClient, *, calendar_id: str | None = None) -> None:
        self.graph = graph
        self.calendar_id = (calendar_id or "").strip() or None

    @property
    def calendar_path(self) -> str:
        if self.calendar_id:
            return f"{self.graph.account_path}/calendars/{parse.quote(self.calendar_id, safe='')}"
        return self.graph.account_path

    def list_events(self, interval: TimeInterval) -> list[CalendarEvent]:
        items = self.graph.get_collection(
            f"{self.calendar_path}/calendarView",
            query={
                "startDateTime": format_graph_datetime(interval.start),
                "endDateTime": format_graph_datetime(interval.end),
                "$orderby": "start/dateTime",
            },
        )
        events = [self._to_calendar_event(item) for item in items]
        logger.info(
            "Calendar view fetched start=%s end=%s events=%d",
            interval.start.isoformat(),
            interval.end.isoformat(),
            len(events),
        )
        return events

    def create_event(self, spec: EventSpec) -> CalendarEvent:
        payload: dict[str, Any] = {
            "subject": self._truncate(spec.subject, 255),
            "start": {
                "dateTime": spec.interval.start.replace(tzinfo=None).isoformat(),
                "timeZone": "UTC",
            },
            "end": {
                "dateTime": spec.interval.end.replace(tzinfo=None).isoformat(),
                "timeZone": "UTC",
            },
        }
        if spec.body_html:
            payload["body"] = {"contentType": "html", "content": spec.body_html}
        attendee_email = (spec.attendee_email or "").strip()
        if attendee_email:
            payload["attendees"] = [
                {
                    "emailAddress": {
                        "address": attendee_email,
                        "name": (spec.attendee_name or "").strip() or attendee_email,
                    },
                    "type": "required",
                },
            ]

        response_payload = self.graph.post_json(f"{self.calendar_path}/events", payload)
        event_id = response_payload.get("id")
        if not isinstance(event_id, str) or not event_id.strip():
            raise GraphApiError("Outlook Calendar create event response missing id.")
        created = self._to_calendar_event(
            response_payload,
            fallback_interval=spec.interval,
            fallback_subject=spec.subject,
        )
        logger.info("Calendar event created id=%s", created.id)
        return created

    def list_calendars(self) -> list[dict[str, str]]:
        items = self.graph.get_collection(f"{self.graph.account_path}/calendars")
        calendars: list[dict[str, str]] = []
        for item in items:
            calendar_id = item.get("id")
            if not isinstance(calendar_id, str) or not calendar_id:
                continue
            calendars.append({"name": str(item.get("name", "")), "id": calendar_id})
        return calendars

    def find_calendar_id(self, calendar_name: str) -> str:
        calendars = self.list_calendars()
        wanted = calendar_name.strip().lower()
        for calendar in calendars:
            if calendar["name"].strip().lower() == wanted:
                logger.info("Found calendar name=%s", calendar["name"])
                return calendar["id"]
        available = ", ".join(calendar["name"] for calendar in calendars) or "none"
        raise CalendarNotFoundError(
            f'Calendar "{calendar_name}" not found. Available calendars: {available}',
        )

    def _to_calendar_event(
        self,
        payload: dict[str, Any],
        *,
        fallback_interval: TimeInterval | None = None,
        fallback_subject: str = "",
    ) -> CalendarEvent:
        start = self._parse_graph_datetime(payload.get("start"))
        end = self._parse_graph_datetime(payload.get("end"))
        if fallback_interval is not None:
            start = start or fallback_interval.start
            end = end or fallback_interval.end
        if start is None or end is None:
            raise GraphApiError("Outlook Calendar event is missing start or end.")

        location = payload.get("location")
        location_name = None
        if isinstance(location, dict):
            display_name = location.get("displayName")
            if isinstance(display_name, str) and display_name.strip():
                location_name = display_name.strip()
        web_link = payload.get("webLink")
        return CalendarEvent(
            id=str(payload.get("id", "")),
            subject=str(payload.get("subject") or fallback_subject),
            start=start,
            end=end,
            web_link=web_link if isinstance(web_link, str) and web_link else None,
            location=location_name,
        )

    def _parse_graph_datetime(self, raw_value: Any) -> datetime | None:
        if not isinstance(raw_value, dict):
            return None
        raw_datetime = raw_value.get("dateTime")
        if not isinstance(raw_datetime, str) or not raw_datetime.strip():
            return None
        cleaned = _FRACTIONAL_SECONDS_PATTERN.sub(r"\1", raw_datetime.strip())
        try:
            parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
        except ValueError as exc:
            raise GraphApiError(f"Outlook Calendar returned an invalid dateTime: {raw_datetime}") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=self._to_zoneinfo(str(raw_value.get("timeZone", ""))))
        return parsed.astimezone(UTC)

    def _to_zoneinfo(self, timezone_name: str) -> Any:
        cleaned = timezone_name.strip()
        if not cleaned or cleaned.upper() in {"UTC", "GMT"}:
            return UTC
        try:
            return ZoneInfo(cleaned)
        except (ZoneInfoNotFoundError, ValueError):
            # Windows zone names are not mapped; the Prefer header asks Graph for UTC anyway.
            return UTC

    def _truncate(self, value: str, limit: int) -> str:
        if len(value) <= limit:
            return value
        return value[: limit - 3] + "..."


def format_graph_datetime(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from calendar_booking.services.errors import ValidationError

DEFAULT_DURATION_MINUTES = 60


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True)
class TimeInterval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))
        if self.start >= self.end:
            raise ValidationError(
                "Interval start must be before its end.",
                details=f"start={self.start.isoformat()} end={self.end.isoformat()}",
            )

    @classmethod
    def from_start(cls, start: datetime, duration_minutes: int) -> TimeInterval:
        try:
            end = ensure_utc(start) + timedelta(minutes=duration_minutes)
        except OverflowError as exc:
            raise ValidationError(
                "Interval end is out of range.",
                details=f"start={start.isoformat()} duration_minutes={duration_minutes}",
            ) from exc
        return cls(start=start, end=end)

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: TimeInterval | CalendarEvent) -> bool:
        # Half-open: [s1, e1) and [s2, e2).
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    subject: str
    start: datetime
    end: datetime
    web_link: str | None = None
    location: str | None = None

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(start=self.start, end=self.end)


@dataclass(frozen=True)
class AvailabilityResult:
    requested_slot: TimeInterval
    conflicting_events: tuple[CalendarEvent, ...] = ()

    @property
    def available(self) -> bool:
        return not self.conflicting_events


@dataclass(frozen=True)
class SlotCandidate:
    start: datetime
    end: datetime
    display_label: str


@dataclass
class BookingRequest:
    raw_date_time: str
    subject: str
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    attendee_email: str | None = None
    attendee_name: str | None = None


@dataclass(frozen=True)
class EventSpec:
    subject: str
    interval: TimeInterval
    attendee_email: str | None = None
    attendee_name: str | None = None
    body_html: str = ""


@dataclass(frozen=True)
class BookingSuccess:
    event: CalendarEvent


@dataclass(frozen=True)
class BookingConflict:
    conflicting_events: tuple[CalendarEvent, ...]
    alternatives: tuple[SlotCandidate, ...] = ()


BookingResult = BookingSuccess | BookingConflict


@dataclass
class TokenRecord:
    access_token: str
    account: dict[str, Any] = field(default_factory=dict)
    expires_on: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_on is None:
            return False
        current_time = now or datetime.now(UTC)
        return ensure_utc(self.expires_on) <= current_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "account": dict(self.account),
            "expires_on": self.expires_on,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> TokenRecord:
        expires_on = payload.get("expires_on")
        return cls(
            access_token=str(payload.get("access_token", "")),
            account=dict(payload.get("account") or {}),
            expires_on=ensure_utc(expires_on) if isinstance(expires_on, datetime) else None,
        )

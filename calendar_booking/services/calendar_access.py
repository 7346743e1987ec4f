from __future__ import annotations

from dataclasses import dataclass
import logging
from urllib import parse

from calendar_booking.core.config import Settings
from calendar_booking.services.errors import ProviderUnavailable, Unauthenticated
from calendar_booking.services.graph_api_client import GraphApiClient
from calendar_booking.services.identity_provider import AuthFailure, MicrosoftIdentityProvider
from calendar_booking.services.outlook_calendar_client import OutlookCalendarClient
from calendar_booking.services.outlook_mail_client import OutlookMailClient
from calendar_booking.services.providers import CalendarProvider, MailProvider
from calendar_booking.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class CalendarAccess:
    calendar: CalendarProvider
    mail: MailProvider | None = None


class CalendarAccessResolver:
    """Builds the Graph clients for one request according to ``AUTH_MODE``."""

    def __init__(
        self,
        settings: Settings,
        session_store: SessionStore,
        identity_provider: MicrosoftIdentityProvider,
    ) -> None:
        self.settings = settings
        self.session_store = session_store
        self.identity_provider = identity_provider

    def resolve(self, user_id: str | None = None) -> CalendarAccess:
        if self.settings.is_service_mode:
            graph = self._build_service_graph()
        else:
            graph = self._build_user_graph(user_id)

        calendar = OutlookCalendarClient(graph)
        if self.settings.calendar_name.strip():
            calendar.calendar_id = calendar.find_calendar_id(self.settings.calendar_name)
        return CalendarAccess(calendar=calendar, mail=OutlookMailClient(graph))

    def _build_user_graph(self, user_id: str | None) -> GraphApiClient:
        cleaned_user_id = (user_id or "").strip()
        if not cleaned_user_id:
            raise Unauthenticated("User not authenticated. Please authenticate first.")
        record = self.session_store.get(cleaned_user_id)
        if record is None:
            raise Unauthenticated("User not authenticated. Please authenticate first.")
        return GraphApiClient(
            access_token=record.access_token,
            account_path="/me",
            timeout_seconds=self.settings.graph_api_timeout_seconds,
            api_base_url=self.settings.graph_api_url,
        )

    def _build_service_graph(self) -> GraphApiClient:
        user_email = self.settings.user_email.strip()
        if not user_email:
            raise ProviderUnavailable("USER_EMAIL must be configured when AUTH_MODE=service.")
        result = self.identity_provider.acquire_token_for_client()
        if isinstance(result, AuthFailure):
            logger.error("Service token acquisition failed kind=%s", result.kind)
            raise ProviderUnavailable(
                f"Failed to acquire application token: {result.message}",
                details=result.kind.value,
            )
        return GraphApiClient(
            access_token=result.token,
            account_path=f"/users/{parse.quote(user_email, safe='@')}",
            timeout_seconds=self.settings.graph_api_timeout_seconds,
            api_base_url=self.settings.graph_api_url,
        )

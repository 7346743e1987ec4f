from fastapi import Depends

from calendar_booking.core.config import get_settings
from calendar_booking.services.calendar_access import CalendarAccessResolver
from calendar_booking.services.identity_provider import MicrosoftIdentityProvider
from calendar_booking.services.session_store import SessionStore, create_session_store


def get_session_store() -> SessionStore:
    return create_session_store(get_settings())


def get_identity_provider() -> MicrosoftIdentityProvider:
    return MicrosoftIdentityProvider.from_settings(get_settings())


def get_calendar_access_resolver(
    session_store: SessionStore = Depends(get_session_store),
    identity_provider: MicrosoftIdentityProvider = Depends(get_identity_provider),
) -> CalendarAccessResolver:
    return CalendarAccessResolver(get_settings(), session_store, identity_provider)

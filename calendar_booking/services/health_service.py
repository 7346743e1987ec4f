from datetime import UTC, datetime

from calendar_booking.core.config import Settings
from calendar_booking.schemas.health import HealthResponse


class HealthService:
    """Liveness only: reports configuration, never calls Microsoft Graph."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def get_status(self) -> HealthResponse:
        return HealthResponse(
            service=self.settings.app_name,
            version=self.settings.app_version,
            auth_mode=self.settings.auth_mode,
            session_store=self.settings.session_store,
            timestamp=datetime.now(UTC),
        )

from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ALLOWED_ENV_FIELD_NAMES = frozenset(
    {
        "app_name",
        "app_env",
        "app_version",
        "api_prefix",
        "allowed_origins",
        "log_level",
        "host",
        "port",
        "auth_mode",
        "client_id",
        "client_secret",
        "tenant_id",
        "redirect_uri",
        "calendar_name",
        "user_email",
        "graph_api_url",
        "graph_api_timeout_seconds",
        "session_store",
        "session_secret_key",
        "mongodb_uri",
        "mongodb_db_name",
        "mongodb_sessions_collection",
        "mongodb_connect_timeout_ms",
    },
)

AUTH_MODE_INTERACTIVE = "interactive"
AUTH_MODE_SERVICE = "service"


class Settings(BaseSettings):
    app_name: str = "Calendar Booking API"
    app_env: str = "development"
    app_version: str = "0.1.0"
    api_prefix: str = ""
    allowed_origins: Annotated[list[str], NoDecode] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000
    auth_mode: str = AUTH_MODE_INTERACTIVE
    client_id: str = ""
    client_secret: str = ""
    tenant_id: str = "common"
    redirect_uri: str = "http://localhost:3000/auth/callback"
    calendar_name: str = ""
    user_email: str = ""
    graph_api_url: str = "https://graph.microsoft.com/v1.0"
    graph_api_timeout_seconds: float = 10.0
    session_store: str = "memory"
    session_secret_key: str = "change-me-in-production"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "calendar_booking"
    mongodb_sessions_collection: str = "user_sessions"
    mongodb_connect_timeout_ms: int = 2000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def _filter_allowed_env_fields(source):
            return {
                field_name: raw_value
                for field_name, raw_value in source().items()
                if field_name in ALLOWED_ENV_FIELD_NAMES
            }

        return (
            init_settings,
            lambda: _filter_allowed_env_fields(env_settings),
            lambda: _filter_allowed_env_fields(dotenv_settings),
            file_secret_settings,
        )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("auth_mode", mode="before")
    @classmethod
    def normalize_auth_mode(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {AUTH_MODE_INTERACTIVE, AUTH_MODE_SERVICE}:
            raise ValueError(
                f"auth_mode must be '{AUTH_MODE_INTERACTIVE}' or '{AUTH_MODE_SERVICE}'.",
            )
        return normalized

    @field_validator("session_store", mode="before")
    @classmethod
    def normalize_session_store(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("tenant_id", mode="before")
    @classmethod
    def normalize_tenant_id(cls, value: str) -> str:
        return value.strip() or "common"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @field_validator("graph_api_timeout_seconds", mode="before")
    @classmethod
    def normalize_graph_api_timeout(cls, value: float | str) -> float:
        parsed_value = float(value)
        if parsed_value <= 0:
            return 10.0
        return parsed_value

    @property
    def is_service_mode(self) -> bool:
        return self.auth_mode == AUTH_MODE_SERVICE


@lru_cache
def get_settings() -> Settings:
    return Settings()

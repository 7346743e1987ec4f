"""Microsoft identity platform (v2.0 endpoints) for delegated and app tokens.

Token acquisition never raises: it returns either an ``AccessToken`` or an
``AuthFailure`` so callers decide how a failed login is surfaced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
import http.client
import json
import logging
from typing import Any
from urllib import error, parse, request

from calendar_booking.core.config import Settings
from calendar_booking.services.errors import AuthError
from calendar_booking.services.graph_api_client import DEFAULT_GRAPH_API_URL

logger = logging.getLogger(__name__)

_AUTHORIZE_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/authorize"
_TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
INTERACTIVE_SCOPES = (
    "offline_access",
    "https://graph.microsoft.com/Calendars.ReadWrite",
    "https://graph.microsoft.com/Mail.Send",
    "https://graph.microsoft.com/User.Read",
)
SERVICE_SCOPES = ("https://graph.microsoft.com/.default",)


class AuthErrorKind(StrEnum):
    not_configured = "not_configured"
    invalid_grant = "invalid_grant"
    transport = "transport"
    invalid_response = "invalid_response"


@dataclass(frozen=True)
class AccessToken:
    token: str
    expires_on: datetime | None = None
    scopes: tuple[str, ...] = ()


@dataclass(frozen=True)
class AuthFailure:
    kind: AuthErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)


TokenResult = AccessToken | AuthFailure


class MicrosoftIdentityProvider:
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        tenant_id: str = "common",
        redirect_uri: str = "",
        timeout_seconds: float = 15.0,
        graph_api_url: str = DEFAULT_GRAPH_API_URL,
    ) -> None:
        self.client_id = client_id.strip()
        self.client_secret = client_secret.strip()
        self.tenant_id = tenant_id.strip() or "common"
        self.redirect_uri = redirect_uri.strip()
        self.timeout_seconds = timeout_seconds
        self.graph_api_url = graph_api_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> MicrosoftIdentityProvider:
        return cls(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            tenant_id=settings.tenant_id,
            redirect_uri=settings.redirect_uri,
            graph_api_url=settings.graph_api_url,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def build_authorization_url(self, state: str) -> str:
        if not self.is_configured or not self.redirect_uri:
            raise AuthError(
                "Microsoft OAuth is not configured. Define CLIENT_ID, CLIENT_SECRET and REDIRECT_URI.",
            )
        query = parse.urlencode(
            {
                "client_id": self.client_id,
                "response_type": "code",
                "redirect_uri": self.redirect_uri,
                "response_mode": "query",
                "scope": " ".join(INTERACTIVE_SCOPES),
                "state": state,
                "prompt": "select_account",
            },
        )
        authorize_url = _AUTHORIZE_URL_TEMPLATE.format(tenant_id=self.tenant_id)
        return f"{authorize_url}?{query}"

    def acquire_token_by_code(self, code: str) -> TokenResult:
        if not self.is_configured or not self.redirect_uri:
            return AuthFailure(
                kind=AuthErrorKind.not_configured,
                message="Microsoft OAuth is not configured.",
            )
        return self._request_token(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
                "scope": " ".join(INTERACTIVE_SCOPES),
            },
        )

    def acquire_token_for_client(self) -> TokenResult:
        if not self.is_configured:
            return AuthFailure(
                kind=AuthErrorKind.not_configured,
                message="Microsoft client credentials are not configured.",
            )
        return self._request_token(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "client_credentials",
                "scope": " ".join(SERVICE_SCOPES),
            },
        )

    def fetch_profile(self, access_token: str) -> dict[str, str]:
        req = request.Request(
            f"{self.graph_api_url}/me",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
            method="GET",
        )
        try:
            with request.urlopen(req, timeout=self.timeout_seconds) as response:
                raw_payload = response.read().decode("utf-8")
        except (http.client.HTTPException, OSError) as exc:
            raise AuthError("Failed to load the Microsoft account profile.") from exc
        try:
            payload = json.loads(raw_payload)
        except json.JSONDecodeError as exc:
            raise AuthError("Invalid Microsoft account profile response.") from exc
        if not isinstance(payload, dict) or not str(payload.get("id", "")).strip():
            raise AuthError("Microsoft account profile does not include an id.")
        return {
            "id": str(payload["id"]).strip(),
            "display_name": str(payload.get("displayName") or "").strip(),
            "email": str(payload.get("mail") or payload.get("userPrincipalName") or "").strip(),
        }

    def _request_token(self, form: dict[str, str]) -> TokenResult:
        body = parse.urlencode(form).encode("utf-8")
        req = request.Request(
            _TOKEN_URL_TEMPLATE.format(tenant_id=self.tenant_id),
            data=body,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            method="POST",
        )
        grant_type = form.get("grant_type", "")
        try:
            with request.urlopen(req, timeout=self.timeout_seconds) as response:
                raw_payload = response.read().decode("utf-8")
        except error.HTTPError as exc:
            body_text = exc.read().decode("utf-8", errors="ignore")
            logger.warning("Token request rejected grant_type=%s status=%s", grant_type, exc.code)
            return AuthFailure(
                kind=AuthErrorKind.invalid_grant,
                message=_describe_token_error(body_text) or f"Token endpoint HTTP {exc.code}.",
                details={"status_code": exc.code},
            )
        except (http.client.HTTPException, OSError) as exc:
            logger.warning("Token request failed grant_type=%s error=%s", grant_type, exc)
            return AuthFailure(
                kind=AuthErrorKind.transport,
                message=f"Token endpoint connection error: {exc}",
            )

        try:
            payload = json.loads(raw_payload)
        except json.JSONDecodeError:
            return AuthFailure(
                kind=AuthErrorKind.invalid_response,
                message="Token endpoint returned invalid JSON.",
            )
        if not isinstance(payload, dict):
            return AuthFailure(
                kind=AuthErrorKind.invalid_response,
                message="Token endpoint response is not a JSON object.",
            )
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token.strip():
            return AuthFailure(
                kind=AuthErrorKind.invalid_response,
                message="Token endpoint response did not include access_token.",
            )

        expires_on = None
        expires_in = payload.get("expires_in")
        if isinstance(expires_in, (int, str)) and str(expires_in).isdigit():
            expires_on = datetime.now(UTC) + timedelta(seconds=int(expires_in))
        scopes = tuple(str(payload.get("scope", "")).split())
        return AccessToken(token=access_token.strip(), expires_on=expires_on, scopes=scopes)


def _describe_token_error(body_text: str) -> str | None:
    try:
        payload = json.loads(body_text)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    description = payload.get("error_description") or payload.get("error")
    if isinstance(description, str) and description.strip():
        return description.strip().splitlines()[0]
    return None

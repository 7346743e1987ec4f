from datetime import UTC, datetime
import http.client
import io
import json
from urllib import error, parse

import pytest

from calendar_booking.services.errors import AuthError
from calendar_booking.services.identity_provider import (
    AccessToken,
    AuthErrorKind,
    AuthFailure,
    MicrosoftIdentityProvider,
)

_URLOPEN = "calendar_booking.services.identity_provider.request.urlopen"


class _MockResponse:
    def __init__(self, payload: dict[str, object]) -> None:
        self._payload = json.dumps(payload).encode("utf-8")

    def __enter__(self) -> "_MockResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:  # type: ignore[no-untyped-def]
        return False

    def read(self) -> bytes:
        return self._payload


def _provider(**overrides) -> MicrosoftIdentityProvider:
    values = {
        "client_id": "client-123",
        "client_secret": "secret-456",
        "tenant_id": "contoso",
        "redirect_uri": "http://localhost:3000/auth/callback",
    }
    values.update(overrides)
    return MicrosoftIdentityProvider(**values)


def test_build_authorization_url_includes_scopes_and_state() -> None:
    url = _provider().build_authorization_url("state-abc")

    parsed = parse.urlparse(url)
    query = parse.parse_qs(parsed.query)
    assert parsed.netloc == "login.microsoftonline.com"
    assert parsed.path == "/contoso/oauth2/v2.0/authorize"
    assert query["client_id"] == ["client-123"]
    assert query["redirect_uri"] == ["http://localhost:3000/auth/callback"]
    assert query["state"] == ["state-abc"]
    assert query["response_type"] == ["code"]
    scopes = query["scope"][0].split()
    assert "https://graph.microsoft.com/Calendars.ReadWrite" in scopes
    assert "https://graph.microsoft.com/Mail.Send" in scopes


def test_build_authorization_url_requires_configuration() -> None:
    with pytest.raises(AuthError, match="not configured"):
        _provider(client_id="").build_authorization_url("state")


def test_acquire_token_by_code_returns_access_token(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_urlopen(req, timeout=15):  # type: ignore[no-untyped-def]
        captured["url"] = req.full_url
        captured["form"] = parse.parse_qs(req.data.decode("utf-8"))
        return _MockResponse(
            {
                "access_token": "graph-token",
                "expires_in": 3600,
                "scope": "Calendars.ReadWrite Mail.Send",
            },
        )

    monkeypatch.setattr(_URLOPEN, fake_urlopen)

    before = datetime.now(UTC)
    result = _provider().acquire_token_by_code("auth-code")

    assert isinstance(result, AccessToken)
    assert result.token == "graph-token"
    assert result.scopes == ("Calendars.ReadWrite", "Mail.Send")
    assert result.expires_on is not None
    assert (result.expires_on - before).total_seconds() >= 3599
    assert captured["url"] == "https://login.microsoftonline.com/contoso/oauth2/v2.0/token"
    form = captured["form"]
    assert isinstance(form, dict)
    assert form["grant_type"] == ["authorization_code"]
    assert form["code"] == ["auth-code"]


def test_rejected_code_returns_invalid_grant(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req, timeout=15):  # type: ignore[no-untyped-def]
        raise error.HTTPError(
            url=req.full_url,
            code=400,
            msg="Bad Request",
            hdrs=None,
            fp=io.BytesIO(
                json.dumps(
                    {
                        "error": "invalid_grant",
                        "error_description": "AADSTS70008: The code has expired.\r\nTrace ID: abc",
                    },
                ).encode("utf-8"),
            ),
        )

    monkeypatch.setattr(_URLOPEN, fake_urlopen)

    result = _provider().acquire_token_by_code("stale-code")

    assert isinstance(result, AuthFailure)
    assert result.kind == AuthErrorKind.invalid_grant
    assert result.message == "AADSTS70008: The code has expired."
    assert result.details == {"status_code": 400}


def test_unreachable_token_endpoint_returns_transport_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req, timeout=15):  # type: ignore[no-untyped-def]
        raise error.URLError("connection refused")

    monkeypatch.setattr(_URLOPEN, fake_urlopen)

    result = _provider().acquire_token_for_client()

    assert isinstance(result, AuthFailure)
    assert result.kind == AuthErrorKind.transport


def test_response_without_access_token_is_invalid(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req, timeout=15):  # type: ignore[no-untyped-def]
        return _MockResponse({"token_type": "Bearer"})

    monkeypatch.setattr(_URLOPEN, fake_urlopen)

    result = _provider().acquire_token_for_client()

    assert isinstance(result, AuthFailure)
    assert result.kind == AuthErrorKind.invalid_response


def test_client_credentials_require_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req, timeout=15):  # type: ignore[no-untyped-def]
        raise AssertionError("No request expected")

    monkeypatch.setattr(_URLOPEN, fake_urlopen)

    result = _provider(client_secret="").acquire_token_for_client()

    assert isinstance(result, AuthFailure)
    assert result.kind == AuthErrorKind.not_configured


def test_fetch_profile_reads_id_and_email(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req, timeout=15):  # type: ignore[no-untyped-def]
        assert req.full_url == "https://graph.microsoft.com/v1.0/me"
        return _MockResponse(
            {
                "id": "user-42",
                "displayName": "Ada Lovelace",
                "userPrincipalName": "ada@contoso.com",
            },
        )

    monkeypatch.setattr(_URLOPEN, fake_urlopen)

    profile = _provider().fetch_profile("graph-token")

    assert profile == {"id": "user-42", "display_name": "Ada Lovelace", "email": "ada@contoso.com"}


def test_dropped_token_connection_returns_transport_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req, timeout=15):  # type: ignore[no-untyped-def]
        raise http.client.RemoteDisconnected("Remote end closed connection without response")

    monkeypatch.setattr(_URLOPEN, fake_urlopen)

    result = _provider().acquire_token_by_code("auth-code")

    assert isinstance(result, AuthFailure)
    assert result.kind == AuthErrorKind.transport


def test_fetch_profile_reset_connection_raises_auth_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req, timeout=15):  # type: ignore[no-untyped-def]
        raise ConnectionResetError(104, "Connection reset by peer")

    monkeypatch.setattr(_URLOPEN, fake_urlopen)

    with pytest.raises(AuthError, match="account profile"):
        _provider().fetch_profile("graph-token")

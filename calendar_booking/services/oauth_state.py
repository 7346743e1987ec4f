"""Signed, expiring ``state`` values for the Microsoft authorization-code flow.

A state is ``<payload>.<signature>``: the payload is base64url JSON carrying a
random nonce and an expiry, the signature an HMAC-SHA256 of the payload under
``SESSION_SECRET_KEY``. Nothing is stored server side.
"""

from __future__ import annotations

import base64
from datetime import UTC, datetime, timedelta
import hashlib
import hmac
import json
import secrets

OAUTH_STATE_TTL_MINUTES = 10
_STATE_PURPOSE = "microsoft_oauth_state"


def issue_oauth_state(
    secret_key: str,
    *,
    ttl_minutes: int = OAUTH_STATE_TTL_MINUTES,
    now: datetime | None = None,
) -> str:
    issued_at = now or datetime.now(UTC)
    claims = {
        "purpose": _STATE_PURPOSE,
        "nonce": secrets.token_urlsafe(16),
        "exp": int((issued_at + timedelta(minutes=ttl_minutes)).timestamp()),
    }
    payload_segment = _encode_segment(
        json.dumps(claims, separators=(",", ":"), sort_keys=True).encode("utf-8"),
    )
    return f"{payload_segment}.{_sign(payload_segment, secret_key)}"


def verify_oauth_state(state: str, secret_key: str, *, now: datetime | None = None) -> bool:
    payload_segment, separator, signature_segment = (state or "").partition(".")
    if not separator or not payload_segment:
        return False
    expected = _sign(payload_segment, secret_key).encode("ascii")
    if not hmac.compare_digest(signature_segment.encode("utf-8"), expected):
        return False

    try:
        claims = json.loads(_decode_segment(payload_segment))
    except (ValueError, UnicodeDecodeError):
        return False
    if not isinstance(claims, dict) or claims.get("purpose") != _STATE_PURPOSE:
        return False

    expires_at = claims.get("exp")
    if not isinstance(expires_at, int):
        return False
    current_time = now or datetime.now(UTC)
    return expires_at >= int(current_time.timestamp())


def _sign(payload_segment: str, secret_key: str) -> str:
    digest = hmac.new(
        secret_key.encode("utf-8"),
        payload_segment.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return _encode_segment(digest)


def _encode_segment(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


def _decode_segment(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))

from datetime import UTC, datetime, timedelta

from calendar_booking.services.oauth_state import issue_oauth_state, verify_oauth_state

_NOW = datetime(2025, 8, 11, 9, 0, tzinfo=UTC)


def test_issued_state_verifies_with_same_secret() -> None:
    state = issue_oauth_state("secret", now=_NOW)

    assert verify_oauth_state(state, "secret", now=_NOW + timedelta(minutes=5)) is True
    assert verify_oauth_state(state, "other-secret", now=_NOW) is False


def test_states_are_unique() -> None:
    assert issue_oauth_state("secret") != issue_oauth_state("secret")


def test_expired_state_is_rejected() -> None:
    state = issue_oauth_state("secret", ttl_minutes=10, now=_NOW)

    assert verify_oauth_state(state, "secret", now=_NOW + timedelta(minutes=11)) is False


def test_tampered_or_malformed_state_is_rejected() -> None:
    state = issue_oauth_state("secret", now=_NOW)
    payload, _, signature = state.partition(".")

    assert verify_oauth_state(f"{payload}x.{signature}", "secret", now=_NOW) is False
    assert verify_oauth_state("no-separator", "secret", now=_NOW) is False
    assert verify_oauth_state("", "secret", now=_NOW) is False
    assert verify_oauth_state("é.ü", "secret", now=_NOW) is False

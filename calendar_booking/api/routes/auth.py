import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import HTMLResponse, RedirectResponse

from calendar_booking.api.dependencies import get_identity_provider, get_session_store
from calendar_booking.api.html_pages import render_auth_failure, render_auth_success
from calendar_booking.core.config import get_settings
from calendar_booking.services.booking_models import TokenRecord
from calendar_booking.services.errors import AuthError
from calendar_booking.services.identity_provider import AuthFailure, MicrosoftIdentityProvider
from calendar_booking.services.oauth_state import issue_oauth_state, verify_oauth_state
from calendar_booking.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("")
def start_auth(
    identity_provider: MicrosoftIdentityProvider = Depends(get_identity_provider),
):
    state_token = issue_oauth_state(get_settings().session_secret_key)
    try:
        authorization_url = identity_provider.build_authorization_url(state_token)
    except AuthError as exc:
        logger.error("Auth URL generation failed: %s", exc.message)
        return HTMLResponse(
            "Failed to generate auth URL",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    logger.info("Redirecting to Microsoft login")
    return RedirectResponse(url=authorization_url, status_code=status.HTTP_302_FOUND)


@router.get("/callback", response_class=HTMLResponse)
def finish_auth(
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    identity_provider: MicrosoftIdentityProvider = Depends(get_identity_provider),
    session_store: SessionStore = Depends(get_session_store),
) -> HTMLResponse:
    if not code:
        return HTMLResponse(
            "Authorization code not found",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    if not verify_oauth_state(state or "", get_settings().session_secret_key):
        return HTMLResponse(
            "Invalid OAuth state",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    token_result = identity_provider.acquire_token_by_code(code)
    if isinstance(token_result, AuthFailure):
        logger.error("Token acquisition failed kind=%s", token_result.kind)
        return HTMLResponse(
            render_auth_failure(token_result.message),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    try:
        profile = identity_provider.fetch_profile(token_result.token)
    except AuthError as exc:
        logger.error("Profile lookup failed: %s", exc.message)
        return HTMLResponse(
            render_auth_failure(exc.message),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    session_store.put(
        profile["id"],
        TokenRecord(
            access_token=token_result.token,
            account=profile,
            expires_on=token_result.expires_on,
        ),
    )
    logger.info("Authentication successful user_id=%s", profile["id"])
    return HTMLResponse(
        render_auth_success(
            user_id=profile["id"],
            display_name=profile["display_name"],
            email=profile["email"],
        ),
    )

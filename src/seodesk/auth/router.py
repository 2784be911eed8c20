"""Authentication router: Google sign-in and the current-user endpoint."""

from __future__ import annotations

from urllib.parse import urlencode

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from seodesk.auth.dependencies import get_current_user
from seodesk.auth.google_oauth import GoogleOAuthClient, GoogleOAuthError
from seodesk.auth.jwt import create_access_token, create_oauth_state, verify_token
from seodesk.auth.schemas import MeResponse, UserInfo
from seodesk.auth.service import upsert_google_user
from seodesk.config import get_settings
from seodesk.database import get_session
from seodesk.db.models import User
from seodesk.dependencies import get_google_oauth
from seodesk.sites.scheduling import DiscoveryScheduler, get_discovery_scheduler

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def user_info(user: User) -> UserInfo:
    """Build a UserInfo from a User model."""
    return UserInfo(
        id=user.id,
        email=user.email,
        name=user.name,
        avatar=user.picture,
        plan=user.plan.value,
    )


def _login_failed(reason: str) -> RedirectResponse:
    """Every callback failure lands on the same login page."""
    query = urlencode({"error": reason})
    return RedirectResponse(f"{get_settings().frontend_base_url}/login?{query}", status_code=302)


@router.get("/google")
async def google_login(oauth: GoogleOAuthClient = Depends(get_google_oauth)) -> RedirectResponse:
    """Redirect to the Google consent screen."""
    if not get_settings().google_configured:
        raise HTTPException(status_code=503, detail="Google sign-in is not configured")
    return RedirectResponse(oauth.authorization_url(create_oauth_state()), status_code=302)


@router.get("/callback")
async def google_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: AsyncSession = Depends(get_session),
    oauth: GoogleOAuthClient = Depends(get_google_oauth),
    schedule_discovery: DiscoveryScheduler = Depends(get_discovery_scheduler),
) -> RedirectResponse:
    """Complete sign-in, provision the user and hand the session token to the frontend."""
    if error:
        logger.info("oauth_denied", error=error)
        return _login_failed(error)
    if not code or not state:
        return _login_failed("missing_code")

    try:
        verify_token(state, expected_type="oauth_state")
    except jwt.InvalidTokenError as e:
        logger.warning("oauth_state_invalid", error=str(e))
        return _login_failed("invalid_state")

    try:
        profile = await oauth.exchange_code(code)
    except GoogleOAuthError as e:
        logger.warning("oauth_exchange_failed", error=str(e))
        return _login_failed("auth_failed")

    user, created = await upsert_google_user(db, profile)
    await db.commit()

    await schedule_discovery(user.id)

    token = create_access_token(user.id, user.email, user.name, user.plan.value)
    logger.info("user_signed_in", user_id=str(user.id), new_user=created)
    query = urlencode({"token": token})
    return RedirectResponse(f"{get_settings().frontend_base_url}/dashboard?{query}", status_code=302)


@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user)) -> MeResponse:
    """Current authenticated user."""
    return MeResponse(user=user_info(user))

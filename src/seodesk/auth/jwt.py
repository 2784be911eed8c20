"""
Session and OAuth-state token management.

Session tokens carry the internal user id in ``sub``; OAuth ``state`` values
are short-lived signed tokens so the callback can be verified without
server-side storage.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from seodesk.config import get_settings


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    name: str,
    plan: str,
) -> str:
    """
    Create a session token for the dashboard frontend.

    Args:
        user_id: The user's database ID.
        email: Google account email.
        name: Display name.
        plan: Subscription plan name.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "name": name,
        "plan": plan,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_access_token_expire_hours),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_oauth_state() -> str:
    """Create a signed, short-lived OAuth ``state`` value."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "nonce": secrets.token_urlsafe(16),
        "iat": now,
        "exp": now + timedelta(seconds=settings.oauth_state_expire_seconds),
        "iss": settings.jwt_issuer,
        "type": "oauth_state",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Verify and decode a token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or of the wrong type.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload

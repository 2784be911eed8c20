"""Session and OAuth-state tokens."""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from seodesk.auth.jwt import create_access_token, create_oauth_state, verify_token
from seodesk.config import get_settings


class TestAccessToken:
    def test_round_trip_claims(self):
        user_id = uuid.uuid4()
        payload = verify_token(create_access_token(user_id, "a@example.com", "A", "TRIAL"))
        assert payload["sub"] == str(user_id)
        assert payload["email"] == "a@example.com"
        assert payload["plan"] == "TRIAL"
        assert payload["iss"] == get_settings().jwt_issuer

    def test_expired(self):
        settings = get_settings()
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "iat": past, "exp": past, "iss": settings.jwt_issuer, "type": "access"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "x", "type": "access"}, "another-secret-that-is-long-enough!", algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_garbage(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_token("not.a.token")


class TestOAuthState:
    def test_state_verifies_as_state(self):
        payload = verify_token(create_oauth_state(), expected_type="oauth_state")
        assert payload["nonce"]

    def test_state_is_not_a_session(self):
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(create_oauth_state())

    def test_session_is_not_a_state(self):
        token = create_access_token(uuid.uuid4(), "a@example.com", "A", "TRIAL")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token, expected_type="oauth_state")

    def test_states_are_unique(self):
        assert create_oauth_state() != create_oauth_state()

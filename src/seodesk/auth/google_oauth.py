"""Google OAuth 2.0 authorization-code flow."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

SCOPES = [
    "openid",
    "email",
    "profile",
    "https://www.googleapis.com/auth/webmasters.readonly",
]


class GoogleOAuthError(Exception):
    """Code exchange or profile lookup failed."""


@dataclass(frozen=True)
class GoogleProfile:
    """Identity returned by Google after consent."""

    google_id: str
    email: str
    name: str | None
    picture: str | None
    refresh_token: str | None


class GoogleOAuthClient:
    """Builds consent URLs and completes the code exchange."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        http: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def authorization_url(self, state: str) -> str:
        """Consent URL requesting offline access so Google issues a refresh token."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "include_granted_scopes": "true",
            "state": state,
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> GoogleProfile:
        """Exchange an authorization code and load the user's profile."""
        try:
            token_response = await self._http.post(
                TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
        except httpx.HTTPError as e:
            msg = f"Token exchange failed: {e}"
            raise GoogleOAuthError(msg) from e
        if token_response.status_code != 200:
            msg = f"Token exchange failed ({token_response.status_code})"
            raise GoogleOAuthError(msg)

        tokens = token_response.json()
        access_token = tokens.get("access_token")
        if not access_token:
            msg = "Token exchange returned no access_token"
            raise GoogleOAuthError(msg)

        try:
            profile_response = await self._http.get(
                USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            msg = f"Profile lookup failed: {e}"
            raise GoogleOAuthError(msg) from e
        if profile_response.status_code != 200:
            msg = f"Profile lookup failed ({profile_response.status_code})"
            raise GoogleOAuthError(msg)

        profile = profile_response.json()
        if not profile.get("sub") or not profile.get("email"):
            msg = "Required claims missing"
            raise GoogleOAuthError(msg)

        return GoogleProfile(
            google_id=profile["sub"],
            email=profile["email"],
            name=profile.get("name"),
            picture=profile.get("picture"),
            refresh_token=tokens.get("refresh_token"),
        )

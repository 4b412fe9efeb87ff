"""Google OAuth 2.0 provider."""

from typing import Optional
from urllib.parse import urlencode

from crafthub.db.models import AuthProvider
from crafthub.identity.providers.base import ExternalProfile, IdentityProvider

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class GoogleProvider(IdentityProvider):
    key = "google"
    auth_provider = AuthProvider.OAUTH_GOOGLE
    id_field = "google_id"

    token_url = GOOGLE_TOKEN_URL
    profile_url = GOOGLE_USERINFO_URL

    def get_authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "email profile",
            "access_type": "offline",  # request refresh_token
            "prompt": "consent",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def parse_profile(self, data: dict) -> Optional[ExternalProfile]:
        if not data.get("id"):
            return None
        return ExternalProfile(
            provider=self.key,
            id=str(data["id"]),
            email=data.get("email") or None,
            name=data.get("name") or None,
            picture=data.get("picture") or None,
        )

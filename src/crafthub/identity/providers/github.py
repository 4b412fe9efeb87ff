"""GitHub OAuth provider.

Learn: GitHub only includes `email` in /user when the account made it
public. If it is missing we ask /user/emails for the primary verified
address; if that fails too the profile simply has no email, and the
resolver will not try to link it to an existing account.
"""

from typing import Optional
from urllib.parse import urlencode

from crafthub.db.models import AuthProvider
from crafthub.identity.providers.base import ExternalProfile, IdentityProvider

GITHUB_AUTH_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"
GITHUB_EMAILS_URL = "https://api.github.com/user/emails"


class GitHubProvider(IdentityProvider):
    key = "github"
    auth_provider = AuthProvider.OAUTH_GITHUB
    id_field = "github_id"

    token_url = GITHUB_TOKEN_URL
    profile_url = GITHUB_USER_URL

    def get_authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": "read:user user:email",
            "state": state,
        }
        return f"{GITHUB_AUTH_URL}?{urlencode(params)}"

    def parse_profile(self, data: dict) -> Optional[ExternalProfile]:
        if data.get("id") is None:
            return None
        return ExternalProfile(
            provider=self.key,
            id=str(data["id"]),
            email=data.get("email") or None,
            name=data.get("name") or data.get("login") or None,
            picture=data.get("avatar_url") or None,
        )

    async def fetch_profile(self, access_token: str) -> Optional[ExternalProfile]:
        profile = await super().fetch_profile(access_token)
        if profile is None or profile.email:
            return profile
        email = await self._primary_email(access_token)
        if not email:
            return profile
        return ExternalProfile(
            provider=profile.provider,
            id=profile.id,
            email=email,
            name=profile.name,
            picture=profile.picture,
        )

    async def _primary_email(self, access_token: str) -> Optional[str]:
        emails = await self._request(
            "GET", GITHUB_EMAILS_URL, headers=self._auth_headers(access_token)
        )
        if not isinstance(emails, list):
            return None
        for entry in emails:
            if entry.get("primary") and entry.get("verified"):
                return entry.get("email")
        return None

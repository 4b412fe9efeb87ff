"""Identity provider base — pluggable interface for OAuth providers.

Learn: CraftHub doesn't verify provider tokens itself. Each provider
implements the same three-step capability:

1. get_authorization_url(state) — where to send the browser
2. exchange_code(code)         — authorization code → access token
3. fetch_profile(access_token) — access token → ExternalProfile

Network failures and non-2xx responses never raise: steps 2 and 3
return None so the caller can answer with a generic "login failed".
The HTTP pattern (own httpx.AsyncClient unless one is injected, explicit
timeout) matches the rest of the codebase.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from crafthub.db.models import AuthProvider

logger = structlog.get_logger()


@dataclass(frozen=True)
class ExternalProfile:
    """The (id, email, name, avatar) tuple a provider returns after token exchange."""

    provider: str
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None


class IdentityProvider(ABC):
    """Abstract base for OAuth identity providers.

    Subclasses set the class attributes and implement the URL builder
    and profile parser; the HTTP plumbing lives here.
    """

    key: str
    auth_provider: AuthProvider
    id_field: str  # User column holding this provider's account id

    token_url: str
    profile_url: str

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 10.0,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._http = http

    @abstractmethod
    def get_authorization_url(self, state: str) -> str:
        """Build the provider's consent-screen URL."""

    @abstractmethod
    def parse_profile(self, data: dict) -> Optional[ExternalProfile]:
        """Map the provider's profile JSON to an ExternalProfile."""

    async def exchange_code(self, code: str) -> Optional[str]:
        """Exchange an authorization code for an access token."""
        data = await self._request(
            "POST",
            self.token_url,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
            headers={"Accept": "application/json"},
        )
        if not isinstance(data, dict):
            return None
        return data.get("access_token") or None

    async def fetch_profile(self, access_token: str) -> Optional[ExternalProfile]:
        """Fetch the account profile behind an access token."""
        data = await self._request(
            "GET",
            self.profile_url,
            headers=self._auth_headers(access_token),
        )
        if not isinstance(data, dict):
            return None
        return self.parse_profile(data)

    def _auth_headers(self, access_token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

    async def _request(self, method: str, url: str, **kwargs) -> Optional[Any]:
        """Send a request; return decoded JSON, or None on any failure."""
        own = self._http or httpx.AsyncClient(timeout=self.timeout)
        try:
            resp = await own.request(method, url, **kwargs)
            if resp.status_code // 100 != 2:
                logger.warning(
                    "oauth.provider_error",
                    provider=self.key,
                    url=url,
                    status=resp.status_code,
                )
                return None
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "oauth.provider_unreachable",
                provider=self.key,
                url=url,
                error=str(e),
            )
            return None
        finally:
            if self._http is None:
                await own.aclose()

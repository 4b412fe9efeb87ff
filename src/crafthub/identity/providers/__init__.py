"""Identity provider registry — one capability implementation per provider.

Learn: Providers are selected by a key tag rather than per-provider
conditionals:
    provider = providers["google"]
    token = await provider.exchange_code(code)

build_providers() instantiates every provider that has a client id
configured; the app keeps the result on app.state.identity_providers.
"""

from typing import Optional

import httpx

from crafthub.config import Settings
from crafthub.db.models import AuthProvider
from crafthub.identity.providers.base import ExternalProfile, IdentityProvider
from crafthub.identity.providers.github import GitHubProvider
from crafthub.identity.providers.google import GoogleProvider

__all__ = [
    "ExternalProfile",
    "IdentityProvider",
    "build_providers",
    "get_provider_class",
    "link_fields",
    "list_providers",
    "register_provider",
]

# ─── Registry ──────────────────────────────────────────────

_PROVIDERS: dict[str, type[IdentityProvider]] = {
    "google": GoogleProvider,
    "github": GitHubProvider,
}


def get_provider_class(key: str) -> type[IdentityProvider]:
    """Get a provider class by key.

    Raises ValueError if the provider is not registered.
    """
    cls = _PROVIDERS.get(key)
    if not cls:
        available = ", ".join(sorted(_PROVIDERS.keys()))
        raise ValueError(f"Unknown identity provider '{key}'. Available: {available}")
    return cls


def link_fields(key: str) -> tuple[str, AuthProvider]:
    """(User id column, AuthProvider value) for a provider key."""
    cls = get_provider_class(key)
    return cls.id_field, cls.auth_provider


def list_providers() -> list[str]:
    """List registered provider keys."""
    return sorted(_PROVIDERS.keys())


def register_provider(key: str, provider_cls: type[IdentityProvider]) -> None:
    """Register an additional provider.

    The provider's id_field must be a unique column on User.
    """
    _PROVIDERS[key] = provider_cls


def build_providers(
    settings: Settings, http: Optional[httpx.AsyncClient] = None
) -> dict[str, IdentityProvider]:
    """Instantiate every provider that has credentials configured."""
    providers: dict[str, IdentityProvider] = {}
    for key in list_providers():
        client_id = getattr(settings, f"{key}_client_id", "")
        if not client_id:
            continue
        providers[key] = get_provider_class(key)(
            client_id=client_id,
            client_secret=getattr(settings, f"{key}_client_secret", ""),
            redirect_uri=getattr(settings, f"{key}_redirect_uri", ""),
            timeout=settings.provider_timeout_seconds,
            http=http,
        )
    return providers

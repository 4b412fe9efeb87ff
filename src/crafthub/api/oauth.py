"""OAuth API — provider consent URL, code callback, and access-token login.

Learn: The three routes map one-to-one onto the provider capability:
- GET  /auth/{provider}/authorize → get_authorization_url(state)
- POST /auth/{provider}/callback  → exchange_code → fetch_profile → resolve
- POST /auth/{provider}/token     → fetch_profile → resolve (mobile apps that
  already hold a provider access token)

A provider that answers with nothing becomes LoginFailed (401). Store
trouble during resolution becomes ResolutionError (503). Neither is
turned into a success.
"""

import secrets

import structlog
from fastapi import APIRouter, Depends

from crafthub.api.deps import get_provider, get_resolver, token_response
from crafthub.auth.dependencies import get_token_codec
from crafthub.auth.errors import LoginFailed
from crafthub.auth.jwt import TokenCodec
from crafthub.db.models import UserRole
from crafthub.identity.providers import IdentityProvider
from crafthub.identity.resolver import IdentityResolver
from crafthub.schemas.auth import (
    AuthorizeResponse,
    OAuthCallbackRequest,
    OAuthTokenRequest,
    TokenResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


@router.get("/{provider}/authorize", response_model=AuthorizeResponse)
async def authorize(idp: IdentityProvider = Depends(get_provider)):
    """Consent-screen URL plus the state value the client must echo back."""
    state = secrets.token_urlsafe(24)
    return AuthorizeResponse(
        provider=idp.key, url=idp.get_authorization_url(state), state=state
    )


@router.post("/{provider}/callback", response_model=TokenResponse)
async def callback(
    body: OAuthCallbackRequest,
    idp: IdentityProvider = Depends(get_provider),
    resolver: IdentityResolver = Depends(get_resolver),
    codec: TokenCodec = Depends(get_token_codec),
):
    access_token = await idp.exchange_code(body.code)
    if not access_token:
        logger.info("oauth.exchange_failed", provider=idp.key)
        raise LoginFailed(f"{idp.key.capitalize()} login failed.")
    return await _login(idp, access_token, UserRole(body.role), resolver, codec)


@router.post("/{provider}/token", response_model=TokenResponse)
async def token_login(
    body: OAuthTokenRequest,
    idp: IdentityProvider = Depends(get_provider),
    resolver: IdentityResolver = Depends(get_resolver),
    codec: TokenCodec = Depends(get_token_codec),
):
    return await _login(idp, body.access_token, UserRole(body.role), resolver, codec)


async def _login(
    idp: IdentityProvider,
    access_token: str,
    role: UserRole,
    resolver: IdentityResolver,
    codec: TokenCodec,
) -> TokenResponse:
    profile = await idp.fetch_profile(access_token)
    if profile is None:
        logger.info("oauth.profile_failed", provider=idp.key)
        raise LoginFailed(f"Invalid {idp.key.capitalize()} token.")
    user = await resolver.resolve(profile, role)
    return token_response(user, codec)

"""Shared route dependencies and response helpers.

Learn: Anything built once at startup (token codec, OTP sender, OAuth
providers) lives on app.state and is reached through these functions,
so tests replace them with app.dependency_overrides instead of patching
module globals.
"""

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from crafthub.auth.jwt import TokenCodec
from crafthub.config import settings
from crafthub.db.engine import get_db
from crafthub.db.models import User, UserRole
from crafthub.identity.providers import IdentityProvider
from crafthub.identity.resolver import IdentityResolver
from crafthub.identity.store import SqlRecordStore
from crafthub.schemas.auth import TokenResponse, UserRead
from crafthub.services.account_service import AccountService
from crafthub.services.otp_service import OtpSender, OtpService


def get_store(db: AsyncSession = Depends(get_db)) -> SqlRecordStore:
    return SqlRecordStore(db)


def get_otp_sender(request: Request) -> OtpSender:
    return request.app.state.otp_sender


def get_identity_providers(request: Request) -> dict[str, IdentityProvider]:
    return request.app.state.identity_providers


def get_account_service(
    db: AsyncSession = Depends(get_db),
    store: SqlRecordStore = Depends(get_store),
    sender: OtpSender = Depends(get_otp_sender),
) -> AccountService:
    return AccountService(store, OtpService(db, sender))


def get_resolver(store: SqlRecordStore = Depends(get_store)) -> IdentityResolver:
    return IdentityResolver(store, timeout=settings.resolution_timeout_seconds)


def get_provider(
    provider: str,
    providers: dict[str, IdentityProvider] = Depends(get_identity_providers),
) -> IdentityProvider:
    """Path-param provider key → configured provider (404 otherwise)."""
    idp = providers.get(provider)
    if idp is None:
        raise HTTPException(
            status_code=404, detail=f"Identity provider '{provider}' is not configured"
        )
    return idp


def token_response(user: User, codec: TokenCodec) -> TokenResponse:
    """Issue a token for `user` and wrap it with the user payload."""
    return TokenResponse(
        token=codec.issue(user),
        user=UserRead.model_validate(user),
        requires_profile_completion=(
            user.role == UserRole.ARTISAN and not user.profile_complete
        ),
    )

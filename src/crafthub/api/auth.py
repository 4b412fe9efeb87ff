"""Auth API — registration, password/OTP login, token refresh.

Learn: Routes for first-party authentication:
- POST /auth/register → create account + sub-profile, send a code
- POST /auth/login → identifier + password → token
- POST /auth/admin/login → admin email + password → token
- POST /auth/otp/request → send a code to an existing account
- POST /auth/otp/verify → code → identifier verified + token
- POST /auth/refresh → current token → token from a fresh user snapshot
- GET /auth/me → claims + stored user

OAuth logins live in api/oauth.py.
"""

from fastapi import APIRouter, Depends

from crafthub.api.deps import get_account_service, token_response
from crafthub.auth.dependencies import get_claims, get_token_codec
from crafthub.auth.jwt import Claims, TokenCodec
from crafthub.db.models import UserRole
from crafthub.schemas.auth import (
    AdminLoginRequest,
    LoginRequest,
    MeResponse,
    OtpRequest,
    OtpSentResponse,
    OtpVerifyRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserRead,
)
from crafthub.services.account_service import AccountService

router = APIRouter(prefix="/auth")


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
):
    """Create an account. The identifier still needs verifying via /otp/verify."""
    user = await accounts.register(
        identifier=body.identifier,
        name=body.name,
        password=body.password,
        role=UserRole(body.role),
        date_of_birth=body.date_of_birth,
    )
    return RegisterResponse(
        identifier=body.identifier,
        expires_in=accounts.otp.ttl_seconds,
        user=UserRead.model_validate(user),
    )


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
    codec: TokenCodec = Depends(get_token_codec),
):
    user = await accounts.login(body.identifier, body.password)
    return token_response(user, codec)


@router.post("/admin/login", response_model=TokenResponse)
async def admin_login(
    body: AdminLoginRequest,
    accounts: AccountService = Depends(get_account_service),
    codec: TokenCodec = Depends(get_token_codec),
):
    user = await accounts.admin_login(body.email, body.password)
    return token_response(user, codec)


# ─── One-time codes ─────────────────────────────────────


@router.post("/otp/request", response_model=OtpSentResponse)
async def request_code(
    body: OtpRequest,
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.request_code(body.identifier)
    return OtpSentResponse(
        identifier=body.identifier, expires_in=accounts.otp.ttl_seconds
    )


@router.post("/otp/verify", response_model=TokenResponse)
async def verify_code(
    body: OtpVerifyRequest,
    accounts: AccountService = Depends(get_account_service),
    codec: TokenCodec = Depends(get_token_codec),
):
    """Redeem a code. Works for both signup verification and passwordless login."""
    user = await accounts.verify_code(body.identifier, body.code)
    return token_response(user, codec)


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    claims: Claims = Depends(get_claims),
    accounts: AccountService = Depends(get_account_service),
    codec: TokenCodec = Depends(get_token_codec),
):
    """Re-issue a token so the claims reflect the current user row."""
    user = await accounts.current_user(claims.id)
    return token_response(user, codec)


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=MeResponse)
async def get_me(
    claims: Claims = Depends(get_claims),
    accounts: AccountService = Depends(get_account_service),
):
    user = await accounts.current_user(claims.id)
    return MeResponse(claims=claims.to_payload(), user=UserRead.model_validate(user))

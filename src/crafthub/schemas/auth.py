"""Pydantic schemas for authentication and user payloads.

Learn: Pydantic v2 models validate request/response data. Separate
request schemas (input) from "Read" schemas (output) for clean APIs.
Roles a client may ask for are restricted to CUSTOMER and ARTISAN;
admins are only ever created by the CLI.
"""

import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from crafthub.auth.identifiers import identifier_field
from crafthub.db.models import AuthProvider, UserRole

SelfServiceRole = Literal["CUSTOMER", "ARTISAN"]


# ─── Users ──────────────────────────────────────────────

class CustomerRead(BaseModel):
    id: uuid.UUID
    preferences: dict = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class ArtisanRead(BaseModel):
    id: uuid.UUID
    skills: list[str] = Field(default_factory=list)
    experience: int = 0
    portfolio: list[str] = Field(default_factory=list)
    bio: Optional[str] = None
    is_profile_complete: bool = False
    is_online: bool = False
    location_tracking: bool = False

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    """User without sub-profiles (listings)."""
    id: uuid.UUID
    email: Optional[str] = None
    phone: Optional[str] = None
    name: str
    role: UserRole
    auth_provider: AuthProvider
    is_email_verified: bool
    is_phone_verified: bool
    profile_complete: bool
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserRead(UserSummary):
    """User with its sub-profile (exactly one of customer/artisan for non-admins)."""
    date_of_birth: Optional[date] = None
    customer: Optional[CustomerRead] = None
    artisan: Optional[ArtisanRead] = None


# ─── Requests ───────────────────────────────────────────

class _IdentifierMixin(BaseModel):
    identifier: str = Field(..., min_length=3, max_length=255)

    @field_validator("identifier")
    @classmethod
    def check_identifier(cls, v: str) -> str:
        v = v.strip()
        identifier_field(v)  # raises ValueError → 422
        return v


class RegisterRequest(_IdentifierMixin):
    name: str = Field(..., min_length=2, max_length=100)
    password: str = Field(..., min_length=8)
    date_of_birth: Optional[date] = None
    role: SelfServiceRole = "CUSTOMER"


class LoginRequest(_IdentifierMixin):
    password: str


class AdminLoginRequest(BaseModel):
    email: str = Field(..., pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    password: str = Field(..., min_length=6)


class OtpRequest(_IdentifierMixin):
    pass


class OtpVerifyRequest(_IdentifierMixin):
    code: str = Field(..., pattern=r"^[0-9]{6}$")


class OAuthCallbackRequest(BaseModel):
    code: str = Field(..., min_length=1)
    role: SelfServiceRole = "CUSTOMER"


class OAuthTokenRequest(BaseModel):
    access_token: str = Field(..., min_length=1)
    role: SelfServiceRole = "CUSTOMER"


# ─── Responses ──────────────────────────────────────────

class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserRead
    requires_profile_completion: bool = False


class OtpSentResponse(BaseModel):
    message: str = "Verification code sent"
    identifier: str
    expires_in: int  # seconds


class RegisterResponse(OtpSentResponse):
    user: UserRead


class AuthorizeResponse(BaseModel):
    provider: str
    url: str
    state: str


class MeResponse(BaseModel):
    claims: dict
    user: UserRead

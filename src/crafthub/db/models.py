"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations mirror these definitions.

Key concepts:
- UUID primary keys via the portable Uuid type (native on PostgreSQL,
  CHAR(32) on SQLite, which the test suite uses)
- JSON columns for list/dict fields (skills, portfolio, preferences)
- Unique constraints on every identity key (email, phone, provider ids).
  The identity resolver relies on them to detect concurrent first logins.
"""

import enum
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    ARTISAN = "ARTISAN"
    ADMIN = "ADMIN"


class AuthProvider(str, enum.Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    OAUTH_GOOGLE = "OAUTH_GOOGLE"
    OAUTH_GITHUB = "OAUTH_GITHUB"


class OtpPurpose(str, enum.Enum):
    SIGNUP = "SIGNUP"
    LOGIN = "LOGIN"
    VERIFICATION = "VERIFICATION"


def _enum(cls: type[enum.Enum]) -> SAEnum:
    # Stored as VARCHAR + CHECK so the schema is identical across dialects
    return SAEnum(cls, native_enum=False, length=20, validate_strings=True)


# ══════════════════════════════════════════════════════════════
# Identity
# ══════════════════════════════════════════════════════════════


class User(Base):
    """A durable identity — one row per person, whatever they log in with.

    Learn: A user is created once (registration or first OAuth login)
    and only ever updated afterwards. The role is fixed at creation.
    Each supported OAuth provider gets its own unique id column so
    lookups by provider id are a single indexed query.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    phone: Mapped[Optional[str]] = mapped_column(
        String(32), unique=True, nullable=True
    )
    google_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    github_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    role: Mapped[UserRole] = mapped_column(_enum(UserRole), nullable=False)
    auth_provider: Mapped[AuthProvider] = mapped_column(
        _enum(AuthProvider), nullable=False
    )
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_phone_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    profile_complete: Mapped[bool] = mapped_column(Boolean, default=False)
    avatar: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # nullable for OAuth / OTP-only accounts
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )

    # Relationships (1:1, at most one of them is populated)
    customer: Mapped[Optional["Customer"]] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    artisan: Mapped[Optional["Artisan"]] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )


class Customer(Base):
    """Customer sub-profile, 1:1 with a CUSTOMER user."""

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    preferences: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )

    user: Mapped["User"] = relationship(back_populates="customer")


class Artisan(Base):
    """Artisan sub-profile, 1:1 with an ARTISAN user.

    Learn: Besides the professional profile (skills, experience, portfolio)
    this row carries the operational state artisans toggle from the app:
    online status and location-tracking consent with the last known position.
    """

    __tablename__ = "artisans"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    skills: Mapped[list] = mapped_column(JSON, default=list)
    experience: Mapped[int] = mapped_column(Integer, default=0)
    portfolio: Mapped[list] = mapped_column(JSON, default=list)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_profile_complete: Mapped[bool] = mapped_column(Boolean, default=False)
    is_online: Mapped[bool] = mapped_column(Boolean, default=False)
    location_tracking: Mapped[bool] = mapped_column(Boolean, default=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_seen: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )

    user: Mapped["User"] = relationship(back_populates="artisan")


# ══════════════════════════════════════════════════════════════
# One-time codes
# ══════════════════════════════════════════════════════════════


class OtpCode(Base):
    """A one-time verification code sent to an email address or phone.

    Learn: Codes are short-lived (5 minutes by default) and single-use.
    Each wrong guess increments `attempts`; once the limit is reached the
    code is burned even if the next guess would have been right.
    """

    __tablename__ = "otp_codes"
    __table_args__ = (
        Index("ix_otp_codes_identifier_used", "identifier", "is_used"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    identifier: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    purpose: Mapped[OtpPurpose] = mapped_column(_enum(OtpPurpose), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    is_used: Mapped[bool] = mapped_column(Boolean, default=False)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

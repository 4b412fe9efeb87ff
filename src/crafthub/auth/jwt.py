"""JWT token issuing and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. The token
carries exactly the claims the access gates need (role and the three
verification flags), so checking them never touches the database.
Claims reflect the user at issuance time; POST /auth/refresh re-issues
from a fresh snapshot.

The codec takes its signing configuration in the constructor. The app
builds one instance at startup (TokenCodec.from_settings) and keeps it
on app.state.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from crafthub.auth.errors import InvalidToken
from crafthub.config import Settings
from crafthub.db.models import User, UserRole

REQUIRED_CLAIMS = ["id", "role", "iat", "exp"]


class Claims(BaseModel):
    """Decoded, verified token payload.

    Field aliases are the wire names; attributes are snake_case.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    role: UserRole
    is_email_verified: bool = Field(alias="isEmailVerified")
    is_phone_verified: bool = Field(alias="isPhoneVerified")
    profile_complete: bool = Field(alias="profileComplete")
    iat: int
    exp: int

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class TokenCodec:
    """Issues and verifies signed, time-bound access tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_minutes: int = 60,
    ):
        if not secret:
            raise ValueError("TokenCodec requires a non-empty secret")
        self._secret = secret
        self.algorithm = algorithm
        self.expires_minutes = expires_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expires_minutes=settings.access_token_expire_minutes,
        )

    def issue(self, user: User, expires_minutes: Optional[int] = None) -> str:
        """Create a token from a snapshot of the user's authorization fields."""
        now = datetime.now(timezone.utc)
        expires = now + timedelta(minutes=expires_minutes or self.expires_minutes)
        payload = {
            "id": str(user.id),
            "role": UserRole(user.role).value,
            "isEmailVerified": bool(user.is_email_verified),
            "isPhoneVerified": bool(user.is_phone_verified),
            "profileComplete": bool(user.profile_complete),
            "iat": now,
            "exp": expires,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Claims:
        """Verify and decode a token.

        Returns the embedded claims verbatim on success.
        Raises InvalidToken on bad signature, malformed structure,
        missing claims, or expiry.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken("Token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidToken(f"Invalid token: {e}")

        try:
            return Claims.model_validate(payload)
        except ValidationError:
            raise InvalidToken("Invalid token: unexpected claims")

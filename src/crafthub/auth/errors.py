"""Auth and identity error taxonomy.

Learn: Every failure the identity layer can signal is an AuthError
subclass with a fixed HTTP status. The class name doubles as the
machine-stable `reason` clients switch on, so renaming one of these
is a breaking API change.
"""

from typing import Optional


class AuthError(Exception):
    """Base class — carries an HTTP status and a stable reason string."""

    status_code: int = 400
    default_message: str = "Request could not be authorized"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def reason(self) -> str:
        return type(self).__name__


class Unauthenticated(AuthError):
    """No credential was presented."""

    status_code = 401
    default_message = "Authentication required"


class InvalidToken(AuthError):
    """Credential is malformed, expired, or carries a bad signature."""

    status_code = 401
    default_message = "Invalid token"


# Token codec callers may prefer the codec-level name
InvalidCredential = InvalidToken


class Forbidden(AuthError):
    """Authenticated, but an access gate rejected the claims."""

    status_code = 403
    default_message = "Access denied"


class LoginFailed(AuthError):
    """Wrong password / code, or the identity provider returned nothing."""

    status_code = 401
    default_message = "Login failed"


class AccountExists(AuthError):
    status_code = 409
    default_message = "User already exists with this email or phone number"


class ResolutionError(AuthError):
    """Store or provider I/O failed while resolving an identity."""

    status_code = 503
    default_message = "Login could not be completed. Please try again."


class LinkConflict(AuthError):
    """A uniqueness constraint rejected a write (concurrent creation)."""

    status_code = 409
    default_message = "Identity was created concurrently"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DeliveryFailed(AuthError):
    """A one-time code could not be handed to the email/SMS channel."""

    status_code = 502
    default_message = "Failed to send verification code. Please try again."


class StoreError(Exception):
    """Raised by record stores on any non-conflict persistence failure."""

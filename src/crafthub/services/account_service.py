"""Account service — registration, password login, and one-time-code login.

Learn: Service layer separates business logic from HTTP routing.
The routes in api/auth.py call these methods to get a User, then hand
that user to the TokenCodec. OAuth logins go through the identity
resolver instead; both paths provision sub-profiles the same way
(identity.resolver.provision_sub_profile).
"""

import uuid
from datetime import date
from typing import Optional

import structlog

from crafthub.auth.errors import (
    AccountExists,
    DeliveryFailed,
    InvalidToken,
    LinkConflict,
    LoginFailed,
    ResolutionError,
    StoreError,
)
from crafthub.auth.identifiers import identifier_field
from crafthub.auth.password import hash_password, verify_password
from crafthub.db.models import AuthProvider, OtpPurpose, User, UserRole
from crafthub.identity.resolver import compensate_user, provision_sub_profile
from crafthub.identity.store import RecordStore
from crafthub.services.otp_service import OtpService

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid credentials."


class AccountService:
    """Business logic for first-party (non-OAuth) accounts."""

    def __init__(self, store: RecordStore, otp: OtpService):
        self.store = store
        self.otp = otp

    # ─── Registration ───────────────────────────────────

    async def register(
        self,
        identifier: str,
        name: str,
        password: str,
        role: UserRole = UserRole.CUSTOMER,
        date_of_birth: Optional[date] = None,
    ) -> User:
        """Create a user + sub-profile and send a verification code.

        If the sub-profile or the code can't be created, the user row
        is removed again so a retry starts from scratch.
        """
        field = identifier_field(identifier)
        if await self.store.find_user_by_field(field, identifier) is not None:
            raise AccountExists()

        data = {
            field: identifier,
            "name": name,
            "date_of_birth": date_of_birth,
            "password_hash": hash_password(password),
            "auth_provider": AuthProvider.EMAIL if field == "email" else AuthProvider.PHONE,
            "role": role,
            "is_email_verified": False,
            "is_phone_verified": False,
            "profile_complete": False,
        }
        try:
            user = await self.store.create_user(data)
        except LinkConflict as e:
            raise AccountExists() from e

        try:
            await provision_sub_profile(self.store, user.id, role)
        except (StoreError, LinkConflict) as e:
            await compensate_user(self.store, user.id)
            raise ResolutionError("Could not provision the user's profile") from e

        try:
            await self.otp.issue(identifier, OtpPurpose.SIGNUP, user_id=user.id)
        except DeliveryFailed:
            await compensate_user(self.store, user.id)
            raise

        logger.info("account.registered", user_id=str(user.id), role=UserRole(role).value)
        return await self._reload(user.id)

    # ─── Password login ─────────────────────────────────

    async def login(self, identifier: str, password: str) -> User:
        """Email/phone + password. Admin accounts must use admin_login."""
        user = await self._find_by_identifier(identifier)
        if (
            user is None
            or user.role == UserRole.ADMIN
            or not verify_password(password, user.password_hash)
        ):
            logger.info("auth.login_failed", identifier=identifier)
            raise LoginFailed(INVALID_CREDENTIALS)
        return user

    async def admin_login(self, email: str, password: str) -> User:
        user = await self.store.find_user_by_field("email", email)
        if (
            user is None
            or user.role != UserRole.ADMIN
            or not verify_password(password, user.password_hash)
        ):
            logger.warning("auth.admin_login_failed", email=email)
            raise LoginFailed(INVALID_CREDENTIALS)
        return user

    # ─── One-time codes ─────────────────────────────────

    async def request_code(self, identifier: str) -> None:
        """Send a login/verification code to an existing account."""
        user = await self._find_by_identifier(identifier)
        if user is None:
            raise LoginFailed("No account found for this email or phone number.")
        await self.otp.issue(identifier, OtpPurpose.LOGIN, user_id=user.id)

    async def verify_code(self, identifier: str, code: str) -> User:
        """Redeem a code: marks the identifier verified and logs the user in."""
        field = identifier_field(identifier)
        if not await self.otp.verify(identifier, code):
            raise LoginFailed("Invalid or expired code.")

        user = await self.store.find_user_by_field(field, identifier)
        if user is None:
            raise LoginFailed("No account found for this email or phone number.")

        flag = "is_email_verified" if field == "email" else "is_phone_verified"
        if not getattr(user, flag):
            user = await self.store.update_user(user.id, {flag: True})

        # Accounts created before sub-profiles existed get one on first login
        if user.role == UserRole.CUSTOMER and user.customer is None:
            await self.store.create_customer(user.id)
        elif user.role == UserRole.ARTISAN and user.artisan is None:
            await provision_sub_profile(self.store, user.id, UserRole.ARTISAN)

        return await self._reload(user.id)

    # ─── Refresh ────────────────────────────────────────

    async def current_user(self, user_id: str) -> User:
        """Fresh user row for a token subject (used to re-issue tokens)."""
        try:
            uid = uuid.UUID(user_id)
        except ValueError as e:
            raise InvalidToken("Invalid token subject") from e
        user = await self.store.get_user(uid)
        if user is None:
            raise InvalidToken("User no longer exists")
        return user

    # ─── Helpers ────────────────────────────────────────

    async def _find_by_identifier(self, identifier: str) -> Optional[User]:
        try:
            field = identifier_field(identifier)
        except ValueError:
            return None
        return await self.store.find_user_by_field(field, identifier)

    async def _reload(self, user_id: uuid.UUID) -> User:
        user = await self.store.get_user(user_id)
        if user is None:
            raise ResolutionError(f"User {user_id} disappeared")
        return user

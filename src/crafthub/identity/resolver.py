"""Identity resolver — external-provider profile → exactly one durable User.

Learn: The precedence order is what keeps identities unique:

1. Provider-id match is authoritative. The user is returned as-is, even
   if the email differs or a different role was requested.
2. Otherwise an email match links the provider to the existing account:
   provider id attached, avatar replaced, auth provider switched, email
   marked verified. The account's role never changes here.
3. Otherwise a new user is created with the requested role, together
   with its Customer/Artisan sub-profile. If the sub-profile cannot be
   created, or the timeout cancels us in between, the user row is
   deleted again and the call fails.
4. The final user is re-fetched with its sub-profile relation.

Steps 1–3 are read-then-write and not atomic. Two concurrent first
logins for the same account race on create; the loser gets LinkConflict
from the unique constraints and re-runs steps 1–2 once.
"""

import asyncio
import uuid
from typing import Optional

import structlog

from crafthub.auth.errors import LinkConflict, ResolutionError, StoreError
from crafthub.db.models import User, UserRole
from crafthub.identity.providers import ExternalProfile, link_fields
from crafthub.identity.store import RecordStore

logger = structlog.get_logger()

ARTISAN_DEFAULTS = {
    "skills": [],
    "experience": 0,
    "portfolio": [],
    "is_profile_complete": False,
}


async def provision_sub_profile(
    store: RecordStore, user_id: uuid.UUID, role: UserRole
) -> None:
    """Create the Customer or Artisan row that matches `role` (admins get none)."""
    role = UserRole(role)
    if role == UserRole.CUSTOMER:
        await store.create_customer(user_id)
    elif role == UserRole.ARTISAN:
        await store.create_artisan(user_id, dict(ARTISAN_DEFAULTS, skills=[], portfolio=[]))


async def compensate_user(store: RecordStore, user_id: uuid.UUID) -> None:
    """Best-effort removal of a user whose sub-profile could not be created."""
    try:
        await store.delete_user(user_id)
    except (StoreError, LinkConflict) as e:
        logger.error("identity.compensation_failed", user_id=str(user_id), error=str(e))


class IdentityResolver:
    """Resolves external profiles to users through an injected RecordStore."""

    def __init__(self, store: RecordStore, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout

    async def resolve(
        self,
        profile: ExternalProfile,
        requested_role: UserRole = UserRole.CUSTOMER,
        timeout: Optional[float] = None,
    ) -> User:
        """Return the single user for `profile`, creating or linking as needed.

        Raises ResolutionError on store failure or when `timeout`
        (seconds; falls back to the resolver default) elapses.
        """
        timeout = timeout if timeout is not None else self.timeout
        coro = self._resolve(profile, UserRole(requested_role))
        try:
            if timeout is None:
                return await coro
            return await asyncio.wait_for(coro, timeout)
        except asyncio.TimeoutError as e:
            raise ResolutionError("Identity resolution timed out") from e

    async def _resolve(self, profile: ExternalProfile, role: UserRole) -> User:
        link_fields(profile.provider)  # unknown providers fail before any I/O
        log = logger.bind(provider=profile.provider, external_id=profile.id)

        try:
            user = await self._lookup(profile)
            if user is None:
                user = await self._create(profile, role)
        except LinkConflict as conflict:
            log.info("identity.link_conflict", field=conflict.field, error=str(conflict))
            try:
                user = await self._lookup(profile)
            except LinkConflict as e:
                raise ResolutionError("Identity conflict could not be resolved") from e
            if user is None:
                raise ResolutionError(
                    "Identity conflict could not be resolved"
                ) from conflict

        final = await self._call(self.store.get_user, user.id)
        if final is None:
            raise ResolutionError(f"User {user.id} disappeared during resolution")
        return final

    async def _lookup(self, profile: ExternalProfile) -> Optional[User]:
        """Steps 1 and 2: provider-id match, then email match + link."""
        id_field, auth_provider = link_fields(profile.provider)

        user = await self._call(self.store.find_user_by_field, id_field, profile.id)
        if user is not None:
            return user

        if not profile.email:
            return None

        user = await self._call(self.store.find_user_by_field, "email", profile.email)
        if user is None:
            return None

        patch = {
            id_field: profile.id,
            "auth_provider": auth_provider,
            "is_email_verified": True,
        }
        if profile.picture:
            patch["avatar"] = profile.picture
        linked = await self._call(self.store.update_user, user.id, patch)
        logger.info(
            "identity.linked",
            user_id=str(linked.id),
            provider=profile.provider,
            role=UserRole(linked.role).value,
        )
        return linked

    async def _create(self, profile: ExternalProfile, role: UserRole) -> User:
        """Step 3: new user plus sub-profile, as one logical unit."""
        id_field, auth_provider = link_fields(profile.provider)
        data = {
            "name": _display_name(profile),
            "email": profile.email,
            id_field: profile.id,
            "avatar": profile.picture,
            "auth_provider": auth_provider,
            "role": role,
            "is_email_verified": True,
            "is_phone_verified": False,
            "profile_complete": False,
        }
        user = await self._call(self.store.create_user, data)

        try:
            await provision_sub_profile(self.store, user.id, role)
        except (StoreError, LinkConflict) as e:
            await compensate_user(self.store, user.id)
            raise ResolutionError("Could not provision the user's profile") from e
        except asyncio.CancelledError:
            # Timed out between the two writes; don't leave the user behind
            await asyncio.shield(compensate_user(self.store, user.id))
            raise

        logger.info(
            "identity.created",
            user_id=str(user.id),
            provider=profile.provider,
            role=role.value,
        )
        return user

    async def _call(self, fn, *args):
        """Run a store call, translating StoreError into ResolutionError.

        LinkConflict passes through; _resolve decides what it means.
        """
        try:
            return await fn(*args)
        except StoreError as e:
            raise ResolutionError(str(e) or "Record store failure") from e


def _display_name(profile: ExternalProfile) -> str:
    if profile.name:
        return profile.name[:100]
    if profile.email:
        return profile.email.split("@", 1)[0][:100]
    return f"{profile.provider.capitalize()} user"

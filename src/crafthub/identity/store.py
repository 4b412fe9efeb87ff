"""Record store — keyed persistence for users and their sub-profiles.

Learn: The identity resolver and account service only talk to the
RecordStore protocol, never to SQLAlchemy directly. SqlRecordStore is
the production implementation; tests substitute in-memory doubles to
exercise races and partial failures that are awkward to provoke on a
real database.

Every write commits on its own, so each call is atomic at the
single-record level. Unique-constraint violations surface as
LinkConflict; any other persistence failure surfaces as StoreError.
"""

import re
import uuid
from typing import Any, Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from crafthub.auth.errors import LinkConflict, StoreError
from crafthub.db.models import Artisan, Customer, OtpCode, User

# Columns that may be used as a lookup key
LOOKUP_FIELDS = frozenset({"id", "email", "phone", "google_id", "github_id"})

# Violated column, as reported by SQLite and by PostgreSQL's DETAIL line
_UNIQUE_COLUMN = re.compile(r"UNIQUE constraint failed: \w+\.(\w+)|Key \((\w+)\)=")


class RecordStore(Protocol):
    async def find_user_by_field(self, field: str, value: Any) -> Optional[User]: ...

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]: ...

    async def create_user(self, data: dict) -> User: ...

    async def update_user(self, user_id: uuid.UUID, patch: dict) -> User: ...

    async def delete_user(self, user_id: uuid.UUID) -> None: ...

    async def create_customer(self, user_id: uuid.UUID) -> Customer: ...

    async def create_artisan(self, user_id: uuid.UUID, defaults: dict) -> Artisan: ...


class SqlRecordStore:
    """RecordStore backed by an AsyncSession (one per request)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Reads ──────────────────────────────────────────

    async def find_user_by_field(self, field: str, value: Any) -> Optional[User]:
        if field not in LOOKUP_FIELDS:
            raise ValueError(f"Unsupported lookup field: {field}")
        q = (
            select(User)
            .where(getattr(User, field) == value)
            .options(selectinload(User.customer), selectinload(User.artisan))
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.db.execute(q)
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"User lookup by {field} failed") from e
        return result.scalars().first()

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.find_user_by_field("id", user_id)

    # ─── Writes ─────────────────────────────────────────

    async def create_user(self, data: dict) -> User:
        user = User(**data)
        self.db.add(user)
        await self._commit("create user")
        return await self._reload(user.id)

    async def update_user(self, user_id: uuid.UUID, patch: dict) -> User:
        user = await self.get_user(user_id)
        if user is None:
            raise StoreError(f"User {user_id} not found")
        for key, value in patch.items():
            setattr(user, key, value)
        await self._commit("update user")
        return await self._reload(user_id)

    async def delete_user(self, user_id: uuid.UUID) -> None:
        # Children first; SQLite only cascades with PRAGMA foreign_keys on
        await self._execute_write(
            [
                delete(Customer).where(Customer.user_id == user_id),
                delete(Artisan).where(Artisan.user_id == user_id),
                delete(OtpCode).where(OtpCode.user_id == user_id),
                delete(User).where(User.id == user_id),
            ],
            "delete user",
        )

    async def create_customer(self, user_id: uuid.UUID) -> Customer:
        customer = Customer(user_id=user_id, preferences={})
        self.db.add(customer)
        await self._commit("create customer")
        return customer

    async def create_artisan(self, user_id: uuid.UUID, defaults: dict) -> Artisan:
        artisan = Artisan(user_id=user_id, **defaults)
        self.db.add(artisan)
        await self._commit("create artisan")
        return artisan

    # ─── Helpers ────────────────────────────────────────

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise LinkConflict(
                f"Conflict on {action}: {e.orig}", field=conflicting_column(e)
            ) from e
        except (SQLAlchemyError, OSError) as e:
            await self.db.rollback()
            raise StoreError(f"Failed to {action}") from e

    async def _execute_write(self, statements: list, action: str) -> None:
        try:
            for statement in statements:
                await self.db.execute(statement)
        except (SQLAlchemyError, OSError) as e:
            await self.db.rollback()
            raise StoreError(f"Failed to {action}") from e
        await self._commit(action)

    async def _reload(self, user_id: uuid.UUID) -> User:
        user = await self.get_user(user_id)
        if user is None:
            raise StoreError(f"User {user_id} vanished after write")
        return user


def conflicting_column(error: IntegrityError) -> Optional[str]:
    """Name of the unique column a driver error complains about, if it says."""
    match = _UNIQUE_COLUMN.search(str(error.orig))
    if match is None:
        return None
    return match.group(1) or match.group(2)

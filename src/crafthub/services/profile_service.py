"""Profile service — sub-profile completion, artisan status, admin listing.

Learn: These handlers sit behind the access gates, so they can assume
the caller's role already matches. A missing sub-profile therefore
means inconsistent data, and is reported as 404 by the routes.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from crafthub.db.models import Artisan, Customer, User, UserRole


class ProfileNotFound(Exception):
    """The user has no sub-profile of the expected kind."""


class ProfileService:
    """Business logic for customer/artisan profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Customers ──────────────────────────────────────

    async def get_customer(self, user_id: uuid.UUID) -> Customer:
        result = await self.db.execute(
            select(Customer)
            .where(Customer.user_id == user_id)
            .options(selectinload(Customer.user))
            .execution_options(populate_existing=True)
        )
        customer = result.scalars().first()
        if customer is None:
            raise ProfileNotFound(f"No customer profile for user {user_id}")
        return customer

    async def complete_customer_profile(
        self, user_id: uuid.UUID, preferences: dict
    ) -> Customer:
        customer = await self.get_customer(user_id)
        customer.preferences = preferences
        customer.user.profile_complete = True
        await self.db.commit()
        return await self.get_customer(user_id)

    # ─── Artisans ───────────────────────────────────────

    async def get_artisan(self, user_id: uuid.UUID) -> Artisan:
        result = await self.db.execute(
            select(Artisan)
            .where(Artisan.user_id == user_id)
            .options(selectinload(Artisan.user))
            .execution_options(populate_existing=True)
        )
        artisan = result.scalars().first()
        if artisan is None:
            raise ProfileNotFound(f"No artisan profile for user {user_id}")
        return artisan

    async def complete_artisan_profile(
        self,
        user_id: uuid.UUID,
        skills: list[str],
        experience: int,
        portfolio: Optional[list[str]] = None,
        bio: Optional[str] = None,
    ) -> Artisan:
        """Fill in the professional profile and mark it complete."""
        artisan = await self.get_artisan(user_id)
        artisan.skills = list(skills)
        artisan.experience = experience
        artisan.portfolio = list(portfolio or [])
        artisan.bio = bio
        artisan.is_profile_complete = True
        artisan.user.profile_complete = True
        await self.db.commit()
        return await self.get_artisan(user_id)

    async def set_online(self, user_id: uuid.UUID, is_online: bool) -> Artisan:
        artisan = await self.get_artisan(user_id)
        artisan.is_online = is_online
        if is_online:
            artisan.last_seen = datetime.now(timezone.utc)
        await self.db.commit()
        return await self.get_artisan(user_id)

    async def set_location_consent(
        self,
        user_id: uuid.UUID,
        location_tracking: bool,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Artisan:
        """Toggle location tracking. Coordinates only change when enabling."""
        artisan = await self.get_artisan(user_id)
        artisan.location_tracking = location_tracking
        if location_tracking:
            artisan.latitude = latitude
            artisan.longitude = longitude
            artisan.last_seen = datetime.now(timezone.utc)
        await self.db.commit()
        return await self.get_artisan(user_id)

    # ─── Admin ──────────────────────────────────────────

    async def list_users(
        self, role: Optional[UserRole] = None, limit: int = 50, offset: int = 0
    ) -> list[User]:
        q = select(User).order_by(User.created_at.desc(), User.id).limit(limit).offset(offset)
        if role is not None:
            q = q.where(User.role == role)
        result = await self.db.execute(q)
        return list(result.scalars().all())

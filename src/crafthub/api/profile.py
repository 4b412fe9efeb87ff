"""Profile API — complete the role-specific sub-profile.

Learn: Each route attaches the role gate for the sub-profile it edits.
Completing a profile flips User.profile_complete, but existing tokens
keep the old claim until the client calls POST /auth/refresh.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from crafthub.auth.dependencies import require_artisan, require_customer
from crafthub.auth.jwt import Claims
from crafthub.db.engine import get_db
from crafthub.schemas.profile import (
    ArtisanProfileRead,
    ArtisanProfileUpdate,
    CustomerProfileRead,
    CustomerProfileUpdate,
)
from crafthub.services.profile_service import ProfileNotFound, ProfileService

router = APIRouter(prefix="/profile")


def _svc(db: AsyncSession = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


@router.put("/customer", response_model=CustomerProfileRead)
async def complete_customer_profile(
    body: CustomerProfileUpdate,
    claims: Claims = Depends(require_customer),
    svc: ProfileService = Depends(_svc),
):
    try:
        return await svc.complete_customer_profile(
            uuid.UUID(claims.id), preferences=body.preferences
        )
    except ProfileNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/artisan", response_model=ArtisanProfileRead)
async def complete_artisan_profile(
    body: ArtisanProfileUpdate,
    claims: Claims = Depends(require_artisan),
    svc: ProfileService = Depends(_svc),
):
    try:
        return await svc.complete_artisan_profile(
            uuid.UUID(claims.id),
            skills=body.skills,
            experience=body.experience,
            portfolio=body.portfolio,
            bio=body.bio,
        )
    except ProfileNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

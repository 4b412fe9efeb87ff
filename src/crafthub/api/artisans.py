"""Artisan status API — online toggle and location-tracking consent.

Learn: Only artisans with a completed profile may go online. Sharing a
location additionally needs a verified phone number, since customers
use it to reach the artisan on the way.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from crafthub.auth.dependencies import require
from crafthub.auth.gates import (
    artisan_only,
    require_profile_complete,
    require_verified_phone,
)
from crafthub.auth.jwt import Claims
from crafthub.db.engine import get_db
from crafthub.schemas.profile import (
    ArtisanStatusRead,
    LocationConsentUpdate,
    OnlineStatusUpdate,
)
from crafthub.services.profile_service import ProfileNotFound, ProfileService

router = APIRouter(prefix="/artisans/me")

active_artisan = require(artisan_only, require_profile_complete)
locatable_artisan = require(artisan_only, require_profile_complete, require_verified_phone)


def _svc(db: AsyncSession = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


@router.get("/status", response_model=ArtisanStatusRead)
async def get_status(
    claims: Claims = Depends(active_artisan),
    svc: ProfileService = Depends(_svc),
):
    try:
        return await svc.get_artisan(uuid.UUID(claims.id))
    except ProfileNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/online-status", response_model=ArtisanStatusRead)
async def update_online_status(
    body: OnlineStatusUpdate,
    claims: Claims = Depends(active_artisan),
    svc: ProfileService = Depends(_svc),
):
    try:
        return await svc.set_online(uuid.UUID(claims.id), body.is_online)
    except ProfileNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/location-consent", response_model=ArtisanStatusRead)
async def update_location_consent(
    body: LocationConsentUpdate,
    claims: Claims = Depends(locatable_artisan),
    svc: ProfileService = Depends(_svc),
):
    try:
        return await svc.set_location_consent(
            uuid.UUID(claims.id),
            location_tracking=body.location_tracking,
            latitude=body.latitude,
            longitude=body.longitude,
        )
    except ProfileNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

"""Admin API — user listing.

Learn: The gates are attached at the router level here, so every
route added to this router is admin-only without repeating Depends().
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crafthub.auth.dependencies import require
from crafthub.auth.gates import admin_only, require_verified_email
from crafthub.db.engine import get_db
from crafthub.db.models import UserRole
from crafthub.schemas.auth import UserSummary
from crafthub.services.profile_service import ProfileService

router = APIRouter(
    prefix="/admin",
    dependencies=[Depends(require(admin_only, require_verified_email))],
)


@router.get("/users", response_model=list[UserSummary])
async def list_users(
    role: Optional[UserRole] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return await ProfileService(db).list_users(role=role, limit=limit, offset=offset)

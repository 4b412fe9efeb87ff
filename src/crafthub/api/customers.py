"""Customer API."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from crafthub.auth.dependencies import require_customer
from crafthub.auth.jwt import Claims
from crafthub.db.engine import get_db
from crafthub.schemas.profile import CustomerProfileRead
from crafthub.services.profile_service import ProfileNotFound, ProfileService

router = APIRouter(prefix="/customers")


@router.get("/me", response_model=CustomerProfileRead)
async def get_my_customer_profile(
    claims: Claims = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await ProfileService(db).get_customer(uuid.UUID(claims.id))
    except ProfileNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

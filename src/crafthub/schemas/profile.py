"""Pydantic schemas for profile completion and artisan status."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from crafthub.schemas.auth import ArtisanRead, CustomerRead


class CustomerProfileUpdate(BaseModel):
    preferences: dict = Field(default_factory=dict)


class ArtisanProfileUpdate(BaseModel):
    skills: list[str] = Field(..., min_length=1)
    experience: int = Field(..., ge=0, le=80)
    portfolio: list[str] = Field(default_factory=list)
    bio: Optional[str] = Field(None, max_length=2000)


class CustomerProfileRead(CustomerRead):
    user_id: uuid.UUID


class ArtisanProfileRead(ArtisanRead):
    user_id: uuid.UUID


class OnlineStatusUpdate(BaseModel):
    is_online: bool


class LocationConsentUpdate(BaseModel):
    location_tracking: bool
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @model_validator(mode="after")
    def coordinates_when_enabling(self):
        if self.location_tracking and (self.latitude is None or self.longitude is None):
            raise ValueError(
                "latitude and longitude are required when enabling location tracking"
            )
        return self


class ArtisanStatusRead(BaseModel):
    is_online: bool
    location_tracking: bool
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    last_seen: Optional[datetime] = None

    model_config = {"from_attributes": True}

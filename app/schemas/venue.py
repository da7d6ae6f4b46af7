"""
Venue-related Pydantic schemas
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import VenueCategory

class VenueCreate(BaseModel):
    """Schema for creating a venue"""
    name: str = Field(..., min_length=1, max_length=200)
    category: VenueCategory = VenueCategory.CLUB
    address: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None

class VenueUpdate(BaseModel):
    """Schema for updating a venue"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[VenueCategory] = None
    address: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None

class VenuePublic(BaseModel):
    """Venue fields shown to link holders"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category: str

class VenueResponse(VenuePublic):
    """Venue response schema"""
    address: Optional[str] = None
    description: Optional[str] = None
    active: bool
    created_at: Optional[datetime] = None

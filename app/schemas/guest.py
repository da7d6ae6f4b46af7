"""
Guest-related Pydantic schemas
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class GuestCreate(BaseModel):
    """Schema for a staff member creating a guest"""
    name: str = Field(..., min_length=1, max_length=100)
    date: date
    dj_user_id: Optional[int] = None

class GuestUpdate(BaseModel):
    """Schema for renaming a guest"""
    name: str = Field(..., min_length=1, max_length=100)

class LinkGuestCreate(BaseModel):
    """Guest registration through an external link"""
    guest_name: str = Field(..., min_length=1, max_length=100)
    date: date

class GuestResponse(BaseModel):
    """Guest response schema"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    venue_id: int
    name: str
    date: date
    status: str
    check_in_time: Optional[datetime] = None
    staff_user_id: Optional[int] = None
    external_link_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

"""
Staff account Pydantic schemas
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.enums import UserRole

class UserCreate(BaseModel):
    """Schema for inviting a staff account"""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    role: UserRole
    venue_id: Optional[int] = None
    guest_limit: Optional[int] = Field(default=None, ge=0)
    # Temporary password; omitted means an invite link is generated instead
    password: Optional[str] = None

class UserUpdate(BaseModel):
    """Schema for updating a staff account"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    role: Optional[UserRole] = None
    guest_limit: Optional[int] = Field(default=None, ge=0)
    active: Optional[bool] = None

class UserResponse(BaseModel):
    """Staff account response schema"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    venue_id: Optional[int] = None
    email: str
    name: str
    role: str
    guest_limit: int
    active: bool

"""
External DJ link Pydantic schemas
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings

class LinkCreate(BaseModel):
    """Schema for creating an external DJ link"""
    dj_name: str = Field(..., min_length=1, max_length=100)
    event: str = Field(..., min_length=1, max_length=200)
    date: date
    max_guests: int = Field(5, ge=1, le=settings.MAX_LINK_GUESTS)
    expires_at: Optional[datetime] = None

class LinkPublic(BaseModel):
    """Link fields shown to the link holder"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    venue_id: int
    token: str
    dj_name: str
    event: str
    date: date
    max_guests: int
    used_guests: int
    active: bool

class LinkResponse(LinkPublic):
    """Link response schema for admins"""
    expires_at: Optional[datetime] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    url: str
    remaining: int

    @classmethod
    def from_link(cls, link, url: str) -> "LinkResponse":
        data = LinkPublic.model_validate(link).model_dump()
        return cls(
            **data,
            expires_at=link.expires_at,
            created_by=link.created_by,
            created_at=link.created_at,
            url=url,
            remaining=max(link.max_guests - link.used_guests, 0),
        )

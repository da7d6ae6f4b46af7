"""
Pydantic schemas package
"""

from .common import *
from .venue import *
from .user import *
from .link import *
from .guest import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "VenueCreate",
    "VenueUpdate",
    "VenuePublic",
    "VenueResponse",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "LinkCreate",
    "LinkPublic",
    "LinkResponse",
    "GuestCreate",
    "GuestUpdate",
    "LinkGuestCreate",
    "GuestResponse",
]

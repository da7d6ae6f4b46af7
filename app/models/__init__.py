"""
Database models package
"""

from .enums import VenueCategory, UserRole, GuestStatus
from .venue import Venue
from .user import User
from .external_link import ExternalDJLink
from .guest import Guest

__all__ = [
    "VenueCategory",
    "UserRole",
    "GuestStatus",
    "Venue",
    "User",
    "ExternalDJLink",
    "Guest",
]

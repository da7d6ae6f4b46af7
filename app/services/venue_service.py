"""
Venue administration service
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.access import ADMIN_ROLES, Caller, require_role, require_venue_role
from app.core.errors import NotFound, ValidationError
from app.models import UserRole, Venue
from app.services.repositories import VenueRepo

logger = logging.getLogger(__name__)


class VenueService:
    """Service for venue CRUD; venues are soft-disabled, never deleted"""

    @staticmethod
    def create_venue(
        db: Session,
        caller: Caller,
        name: str,
        category: str,
        address: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Venue:
        require_role(caller, UserRole.SUPER_ADMIN.value)
        name = name.strip()
        if not name:
            raise ValidationError("Venue name is required")

        venue = Venue(
            name=name,
            category=category,
            address=(address or "").strip() or None,
            description=(description or "").strip() or None,
            active=True,
        )
        db.add(venue)
        db.commit()
        db.refresh(venue)
        logger.info(f"Venue {venue.id} created by user {caller.user_id}")
        return venue

    @staticmethod
    def list_venues(db: Session, caller: Caller, include_inactive: bool = False) -> List[Venue]:
        if caller.is_super_admin:
            return VenueRepo.list(db, include_inactive=include_inactive)
        if caller.venue_id is None:
            return []
        return VenueRepo.list(db, include_inactive=include_inactive, venue_id=caller.venue_id)

    @staticmethod
    def get_venue(db: Session, caller: Caller, venue_id: int) -> Venue:
        venue = VenueRepo.get(db, venue_id)
        if not venue:
            raise NotFound("Venue not found")
        require_venue_role(caller, venue_id, *ADMIN_ROLES)
        return venue

    @staticmethod
    def update_venue(
        db: Session,
        caller: Caller,
        venue_id: int,
        name: Optional[str] = None,
        category: Optional[str] = None,
        address: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Venue:
        venue = VenueService.get_venue(db, caller, venue_id)

        if name is not None:
            if not name.strip():
                raise ValidationError("Venue name is required")
            venue.name = name.strip()
        if category is not None:
            venue.category = category
        if address is not None:
            venue.address = address.strip() or None
        if description is not None:
            venue.description = description.strip() or None

        db.commit()
        db.refresh(venue)
        return venue

    @staticmethod
    def set_active(db: Session, caller: Caller, venue_id: int, active: bool) -> Venue:
        require_role(caller, UserRole.SUPER_ADMIN.value)
        venue = VenueRepo.get(db, venue_id)
        if not venue:
            raise NotFound("Venue not found")

        if venue.active != active:
            venue.active = active
            db.commit()
            db.refresh(venue)
            logger.info(f"Venue {venue_id} {'activated' if active else 'deactivated'} by user {caller.user_id}")
        return venue

"""
Staff-side guest creation and editing
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.access import STAFF_ROLES, Caller, require_venue_role
from app.core.errors import Forbidden, LimitReached, NotFound, StoreError, ValidationError
from app.models import Guest, GuestStatus, User, UserRole
from app.services.naming import normalize_guest_name
from app.services.repositories import GuestRepo, UserRepo, VenueRepo

logger = logging.getLogger(__name__)


class GuestService:
    """Service for guests created by authenticated staff"""

    @staticmethod
    def _resolve_attribution(db: Session, caller: Caller, venue_id: int, dj_user_id: Optional[int]) -> Optional[User]:
        if caller.is_dj:
            if dj_user_id not in (None, caller.user_id):
                raise Forbidden("DJs can only add guests to their own list")
            return UserRepo.get(db, caller.user_id)

        if dj_user_id is None:
            return None

        dj = UserRepo.get(db, dj_user_id)
        if not dj or dj.role != UserRole.DJ.value or dj.venue_id != venue_id or not dj.active:
            raise ValidationError("dj_user_id must be an active DJ of this venue")
        return dj

    @staticmethod
    def create_guest(
        db: Session,
        caller: Caller,
        venue_id: int,
        name: str,
        on_date: date,
        dj_user_id: Optional[int] = None,
    ) -> Guest:
        """Add a pending guest; a DJ's guests count against its per-night quota"""
        require_venue_role(caller, venue_id, *STAFF_ROLES)

        venue = VenueRepo.get(db, venue_id)
        if not venue or not venue.active:
            raise NotFound("Venue not found")

        normalized = normalize_guest_name(name)
        dj = GuestService._resolve_attribution(db, caller, venue_id, dj_user_id)

        guest = Guest(
            venue_id=venue_id,
            name=normalized,
            date=on_date,
            status=GuestStatus.PENDING.value,
            staff_user_id=dj.id if dj else None,
        )

        try:
            if dj is not None and dj.role == UserRole.DJ.value:
                # Insert then count under the DJ row lock so parallel adds see each other
                UserRepo.lock(db, dj.id)
                db.add(guest)
                db.flush()
                limit = dj.guest_limit
                if GuestRepo.count_active_for_staff(db, dj.id, on_date) > limit:
                    db.rollback()
                    raise LimitReached(f"Guest limit of {limit} reached for {on_date.isoformat()}")
            else:
                db.add(guest)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Adding guest for venue {venue_id} failed: {e}")
            raise StoreError() from e

        db.refresh(guest)
        logger.info(f"Guest {guest.id} added by user {caller.user_id} for venue {venue_id} on {on_date}")
        return guest

    @staticmethod
    def rename_guest(db: Session, caller: Caller, guest_id: int, name: str) -> Guest:
        """Fix a misspelt name on a pending guest"""
        guest = GuestRepo.get(db, guest_id)
        if guest is None or guest.status == GuestStatus.DELETED.value:
            raise NotFound("Guest not found")

        require_venue_role(caller, guest.venue_id, *STAFF_ROLES)
        if caller.is_dj and guest.staff_user_id != caller.user_id:
            raise Forbidden("DJs can only edit their own guests")
        if guest.status != GuestStatus.PENDING.value:
            raise ValidationError("Only pending guests can be renamed")

        guest.name = normalize_guest_name(name)
        db.commit()
        db.refresh(guest)
        return guest

"""
Guest check-in service with real-time broadcasting
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.ws import WebSocketManager
from app.core.access import DOOR_ROLES, STAFF_ROLES, Caller, require_role, require_venue_access
from app.core.errors import Forbidden, NotFound, StoreError
from app.models import Guest, GuestStatus
from app.schemas.guest import GuestResponse
from app.services.repositories import GuestRepo

logger = logging.getLogger(__name__)

# Allowed status changes; re-checking a checked guest refreshes the timestamp
TRANSITIONS: Dict[str, frozenset] = {
    GuestStatus.PENDING.value: frozenset({GuestStatus.CHECKED.value, GuestStatus.DELETED.value}),
    GuestStatus.CHECKED.value: frozenset({
        GuestStatus.CHECKED.value,
        GuestStatus.PENDING.value,
        GuestStatus.DELETED.value,
    }),
    GuestStatus.DELETED.value: frozenset(),
}


def _authorize(caller: Caller, guest: Guest, target: str) -> None:
    require_venue_access(caller, guest.venue_id)
    if target == GuestStatus.DELETED.value:
        require_role(caller, *STAFF_ROLES)
        if caller.is_dj and guest.staff_user_id != caller.user_id:
            raise Forbidden("DJs can only remove their own guests")
    else:
        require_role(caller, *DOOR_ROLES)


def change_status(
    db: Session,
    caller: Caller,
    guest_id: int,
    target: str,
    now: Optional[datetime] = None,
) -> Guest:
    """Apply one state-machine transition and return the stored record.

    Nothing is changed in memory unless the write commits: on a store
    failure the session is rolled back and StoreError is raised.
    """
    guest = GuestRepo.get(db, guest_id)
    if guest is None or guest.status == GuestStatus.DELETED.value:
        raise NotFound("Guest not found")

    _authorize(caller, guest, target)

    if target not in TRANSITIONS[guest.status]:
        # pending -> pending; nothing to do
        return guest

    guest.status = target
    if target == GuestStatus.CHECKED.value:
        guest.check_in_time = now or datetime.utcnow()
    elif target == GuestStatus.PENDING.value:
        guest.check_in_time = None

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Status change of guest {guest_id} to {target} failed: {e}")
        raise StoreError() from e

    db.refresh(guest)
    logger.info(f"Guest {guest.id} -> {guest.status} by user {caller.user_id}")
    return guest


class CheckInService:
    """Service for guest status changes"""

    def __init__(self, websocket_manager: WebSocketManager):
        self.websocket_manager = websocket_manager

    async def check_in(self, db: Session, caller: Caller, guest_id: int) -> Guest:
        """Mark a guest as arrived and broadcast the update"""
        guest = change_status(db, caller, guest_id, GuestStatus.CHECKED.value)
        await self.broadcast_guest_update(guest, "guest_checked_in")
        return guest

    async def undo_check_in(self, db: Session, caller: Caller, guest_id: int) -> Guest:
        """Return a mistakenly checked guest to pending"""
        guest = change_status(db, caller, guest_id, GuestStatus.PENDING.value)
        await self.broadcast_guest_update(guest, "guest_check_in_undone")
        return guest

    async def delete_guest(self, db: Session, caller: Caller, guest_id: int) -> Guest:
        """Soft delete; link counters are left untouched"""
        guest = change_status(db, caller, guest_id, GuestStatus.DELETED.value)
        await self.broadcast_guest_update(guest, "guest_deleted")
        return guest

    async def broadcast_guest_update(
        self,
        guest: Guest,
        update_type: str = "guest_update"
    ):
        """Broadcast individual guest update to the venue room"""

        message = {
            "type": update_type,
            "guest": GuestResponse.model_validate(guest).model_dump(mode="json"),
            "timestamp": datetime.utcnow().isoformat()
        }

        await self.websocket_manager.broadcast_to_venue(guest.venue_id, message)

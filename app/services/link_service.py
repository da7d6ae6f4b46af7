"""
External DJ link service: token validation, anonymous guest registration
and link administration.
"""

import logging
import secrets
import string
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.access import ADMIN_ROLES, Caller, require_venue_role
from app.core.config import settings
from app.core.errors import DateMismatch, Expired, LimitReached, NotFound, StoreError, ValidationError
from app.models import ExternalDJLink, Guest, GuestStatus
from app.services.naming import normalize_guest_name
from app.services.repositories import GuestRepo, LinkRepo, VenueRepo

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_uppercase + string.digits


def generate_link_token(length: Optional[int] = None) -> str:
    """Random upper-case alphanumeric token"""
    length = length or settings.LINK_TOKEN_LENGTH
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def link_url(token: str) -> str:
    """Public registration URL handed to the DJ"""
    return f"{settings.BASE_URL.rstrip('/')}/guest?token={token}"


def _check_usable(link: Optional[ExternalDJLink], now: datetime) -> ExternalDJLink:
    if link is None:
        raise NotFound("Invalid link")
    if link.expires_at is not None and link.expires_at < now:
        raise Expired()
    if link.used_guests >= link.max_guests:
        raise LimitReached()
    return link


class LinkService:
    """Service for external link operations"""

    @staticmethod
    def validate_link(db: Session, token: str, now: Optional[datetime] = None) -> Dict:
        """Check a token and return the link, its venue and its current guests.

        Advisory only: no slot is reserved, registration re-validates.
        """
        now = now or datetime.utcnow()
        link = _check_usable(LinkRepo.get_active_by_token(db, token), now)

        venue = VenueRepo.get(db, link.venue_id)
        guests = GuestRepo.list_active_for_link(db, link.id)
        return {"link": link, "venue": venue, "guests": guests}

    @staticmethod
    def register_guest(
        db: Session,
        token: str,
        guest_name: str,
        on_date: date,
        now: Optional[datetime] = None,
    ) -> Guest:
        """Register a guest against a link, consuming exactly one slot.

        The slot is claimed with a conditional UPDATE before anything is
        read, so concurrent registrations serialize on the link row and can
        never push used_guests past max_guests.
        """
        now = now or datetime.utcnow()
        name = normalize_guest_name(guest_name)

        try:
            claimed = LinkRepo.claim_slot(db, token, on_date, now)
            if not claimed:
                db.rollback()
                link = _check_usable(LinkRepo.get_active_by_token(db, token), now)
                if link.date != on_date:
                    raise DateMismatch()
                # Link state changed concurrently (deactivated then reactivated); report the limit we hit
                raise LimitReached()

            link = LinkRepo.get_active_by_token(db, token)
            guest = Guest(
                venue_id=link.venue_id,
                name=name,
                date=on_date,
                status=GuestStatus.PENDING.value,
                external_link_id=link.id,
            )
            db.add(guest)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Link registration failed for token {token[:4]}***: {e}")
            raise StoreError() from e

        db.refresh(guest)
        logger.info(f"Guest {guest.id} registered via link {guest.external_link_id} for {on_date}")
        return guest

    @staticmethod
    def remove_guest(db: Session, token: str, guest_id: int) -> Guest:
        """Let the link holder withdraw one of its own pending guests.

        The slot stays consumed: used_guests is never decremented.
        """
        link = LinkRepo.get_active_by_token(db, token)
        if link is None:
            raise NotFound("Invalid link")

        guest = GuestRepo.get(db, guest_id)
        if guest is None or guest.external_link_id != link.id or guest.status == GuestStatus.DELETED.value:
            raise NotFound("Guest not found")
        if guest.status != GuestStatus.PENDING.value:
            raise ValidationError("Checked-in guests cannot be removed")

        guest.status = GuestStatus.DELETED.value
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError() from e
        db.refresh(guest)
        return guest

    # -------- administration --------

    @staticmethod
    def create_link(
        db: Session,
        caller: Caller,
        venue_id: int,
        dj_name: str,
        event: str,
        on_date: date,
        max_guests: int,
        expires_at: Optional[datetime] = None,
    ) -> ExternalDJLink:
        """Create a link with a fresh unique token"""
        require_venue_role(caller, venue_id, *ADMIN_ROLES)

        venue = VenueRepo.get(db, venue_id)
        if not venue or not venue.active:
            raise NotFound("Venue not found")
        if not 1 <= max_guests <= settings.MAX_LINK_GUESTS:
            raise ValidationError(f"max_guests must be between 1 and {settings.MAX_LINK_GUESTS}")
        if expires_at is not None and expires_at.tzinfo is not None:
            # Stored as naive UTC, like every other timestamp column
            expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)

        token = generate_link_token()
        while LinkRepo.token_exists(db, token):
            token = generate_link_token()

        link = ExternalDJLink(
            venue_id=venue_id,
            token=token,
            dj_name=dj_name.strip().upper(),
            event=event.strip().upper(),
            date=on_date,
            max_guests=max_guests,
            used_guests=0,
            active=True,
            expires_at=expires_at,
            created_by=caller.user_id,
        )
        db.add(link)
        db.commit()
        db.refresh(link)
        logger.info(f"Link {link.id} created for venue {venue_id} on {on_date} ({max_guests} guests)")
        return link

    @staticmethod
    def list_links(db: Session, caller: Caller, venue_id: int, on_date: Optional[date] = None) -> List[ExternalDJLink]:
        require_venue_role(caller, venue_id, *ADMIN_ROLES)
        return LinkRepo.list_by_venue(db, venue_id, on_date)

    @staticmethod
    def get_link(db: Session, caller: Caller, link_id: int) -> ExternalDJLink:
        link = LinkRepo.get(db, link_id)
        if not link:
            raise NotFound("Link not found")
        require_venue_role(caller, link.venue_id, *ADMIN_ROLES)
        return link

    @staticmethod
    def deactivate_link(db: Session, caller: Caller, link_id: int) -> ExternalDJLink:
        link = LinkService.get_link(db, caller, link_id)
        if link.active:
            link.active = False
            db.commit()
            db.refresh(link)
        return link

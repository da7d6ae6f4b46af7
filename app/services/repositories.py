"""
Repository layer over the SQL store.

Services go through these helpers for plain reads and writes; the one
multi-row write with an atomicity requirement (link capacity increment)
lives here as well so it is expressed as a single conditional UPDATE.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from app.models import ExternalDJLink, Guest, GuestStatus, User, Venue


# -------- Venue repository --------

class VenueRepo:
    @staticmethod
    def get(db: Session, venue_id: int) -> Optional[Venue]:
        return db.query(Venue).filter(Venue.id == venue_id).first()

    @staticmethod
    def list(db: Session, include_inactive: bool = False, venue_id: Optional[int] = None) -> List[Venue]:
        query = db.query(Venue)
        if not include_inactive:
            query = query.filter(Venue.active.is_(True))
        if venue_id is not None:
            query = query.filter(Venue.id == venue_id)
        return query.order_by(Venue.name).all()


# -------- User repository --------

class UserRepo:
    @staticmethod
    def get(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def lock(db: Session, user_id: int) -> Optional[User]:
        """Row lock serializing per-user quota checks (ignored by SQLite)"""
        return db.query(User).filter(User.id == user_id).with_for_update().first()

    @staticmethod
    def get_by_auth_uid(db: Session, auth_uid: str) -> Optional[User]:
        return db.query(User).filter(User.auth_uid == auth_uid).first()

    @staticmethod
    def get_unbound_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(
            func.lower(User.email) == email.lower(),
            User.auth_uid.is_(None),
        ).first()

    @staticmethod
    def email_taken(db: Session, email: str) -> bool:
        return db.query(User.id).filter(func.lower(User.email) == email.lower()).first() is not None

    @staticmethod
    def list(db: Session, venue_id: Optional[int] = None) -> List[User]:
        query = db.query(User)
        if venue_id is not None:
            query = query.filter(User.venue_id == venue_id)
        return query.order_by(User.name).all()


# -------- External link repository --------

class LinkRepo:
    @staticmethod
    def get(db: Session, link_id: int) -> Optional[ExternalDJLink]:
        return db.query(ExternalDJLink).filter(ExternalDJLink.id == link_id).first()

    @staticmethod
    def get_active_by_token(db: Session, token: str) -> Optional[ExternalDJLink]:
        return db.query(ExternalDJLink).filter(
            ExternalDJLink.token == token,
            ExternalDJLink.active.is_(True),
        ).first()

    @staticmethod
    def token_exists(db: Session, token: str) -> bool:
        return db.query(ExternalDJLink.id).filter(ExternalDJLink.token == token).first() is not None

    @staticmethod
    def list_by_venue(db: Session, venue_id: int, on_date: Optional[date] = None) -> List[ExternalDJLink]:
        query = db.query(ExternalDJLink).filter(ExternalDJLink.venue_id == venue_id)
        if on_date is not None:
            query = query.filter(ExternalDJLink.date == on_date)
        return query.order_by(ExternalDJLink.date.desc(), ExternalDJLink.created_at.desc()).all()

    @staticmethod
    def claim_slot(db: Session, token: str, on_date: date, now: datetime) -> int:
        """Atomically consume one slot of an active, unexpired link for on_date.

        Returns the number of rows updated (0 or 1). Does not commit; the
        caller inserts the guest in the same transaction.
        """
        result = db.execute(
            update(ExternalDJLink)
            .where(
                ExternalDJLink.token == token,
                ExternalDJLink.active.is_(True),
                ExternalDJLink.date == on_date,
                ExternalDJLink.used_guests < ExternalDJLink.max_guests,
                or_(ExternalDJLink.expires_at.is_(None), ExternalDJLink.expires_at >= now),
            )
            .values(
                used_guests=ExternalDJLink.used_guests + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


# -------- Guest repository --------

class GuestRepo:
    @staticmethod
    def get(db: Session, guest_id: int) -> Optional[Guest]:
        return db.query(Guest).filter(Guest.id == guest_id).first()

    @staticmethod
    def list_active(db: Session, venue_id: int, on_date: date) -> List[Guest]:
        return db.query(Guest).filter(
            Guest.venue_id == venue_id,
            Guest.date == on_date,
            Guest.status != GuestStatus.DELETED.value,
        ).order_by(Guest.created_at, Guest.id).all()

    @staticmethod
    def list_active_for_link(db: Session, link_id: int) -> List[Guest]:
        return db.query(Guest).filter(
            Guest.external_link_id == link_id,
            Guest.status != GuestStatus.DELETED.value,
        ).order_by(Guest.created_at, Guest.id).all()

    @staticmethod
    def count_active_for_staff(db: Session, staff_user_id: int, on_date: date) -> int:
        return db.query(func.count(Guest.id)).filter(
            Guest.staff_user_id == staff_user_id,
            Guest.date == on_date,
            Guest.status != GuestStatus.DELETED.value,
        ).scalar()

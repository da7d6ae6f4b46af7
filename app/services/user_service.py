"""
Staff account administration and session resolution
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.access import ADMIN_ROLES, Caller, require_role
from app.core.config import settings
from app.core.errors import Forbidden, NotFound, StoreError, Unauthorized, ValidationError
from app.models import User, UserRole
from app.services.identity import SessionIdentity
from app.services.repositories import UserRepo, VenueRepo

logger = logging.getLogger(__name__)


def default_guest_limit(role: str) -> int:
    if role == UserRole.DJ.value:
        return settings.DEFAULT_DJ_GUEST_LIMIT
    if role in ADMIN_ROLES:
        return settings.DEFAULT_ADMIN_GUEST_LIMIT
    return 0


class UserService:
    """Service for staff accounts"""

    @staticmethod
    def resolve_session(db: Session, identity: SessionIdentity) -> User:
        """Map a verified session onto an active staff account.

        An invited account that has not signed in yet is bound to the
        session subject by email.
        """
        user = UserRepo.get_by_auth_uid(db, identity.uid)
        if user is None and identity.email:
            user = UserRepo.get_unbound_by_email(db, identity.email)
            if user is not None:
                user.auth_uid = identity.uid
                db.commit()
                db.refresh(user)
                logger.info(f"Bound user {user.id} to auth subject on first sign-in")

        if user is None:
            raise Unauthorized("No staff account for this session")
        if not user.active:
            raise Unauthorized("Account is deactivated")
        return user

    @staticmethod
    def _check_manageable(caller: Caller, role: str, venue_id: Optional[int]) -> None:
        require_role(caller, *ADMIN_ROLES)
        if caller.is_super_admin:
            return
        if role == UserRole.SUPER_ADMIN.value:
            raise Forbidden("Cannot manage super admin accounts")
        if venue_id != caller.venue_id:
            raise Forbidden("Cannot manage users of another venue")

    @staticmethod
    def create_user(
        db: Session,
        caller: Caller,
        identity,
        email: str,
        name: str,
        role: str,
        venue_id: Optional[int] = None,
        guest_limit: Optional[int] = None,
        password: Optional[str] = None,
    ) -> Dict:
        """Create a staff account and provision its sign-in identity.

        With a temporary password the account can sign in immediately;
        otherwise an invitation (password setup) link is produced.
        """
        if role == UserRole.SUPER_ADMIN.value:
            venue_id = None
        elif venue_id is None:
            raise ValidationError("venue_id is required for roles other than super_admin")

        UserService._check_manageable(caller, role, venue_id)

        if venue_id is not None and not VenueRepo.get(db, venue_id):
            raise NotFound("Venue not found")
        if password is not None and len(password) < settings.MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")
        if UserRepo.email_taken(db, email):
            raise ValidationError("Email is already registered")

        auth_uid = identity.create_account(email, password, name)
        invite_link = None if password else identity.invite_link(email)

        user = User(
            auth_uid=auth_uid,
            venue_id=venue_id,
            email=email.lower(),
            name=name.strip(),
            role=role,
            guest_limit=guest_limit if guest_limit is not None else default_guest_limit(role),
            active=True,
        )
        try:
            db.add(user)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Saving user {email} failed: {e}")
            if auth_uid:
                identity.delete_account(auth_uid)
            raise StoreError() from e

        db.refresh(user)
        logger.info(f"User {user.id} ({role}) created by user {caller.user_id}")
        return {"user": user, "invite_link": invite_link}

    @staticmethod
    def list_users(db: Session, caller: Caller, venue_id: Optional[int] = None) -> List[User]:
        require_role(caller, *ADMIN_ROLES)
        if not caller.is_super_admin:
            venue_id = caller.venue_id
        return UserRepo.list(db, venue_id)

    @staticmethod
    def get_user(db: Session, caller: Caller, user_id: int) -> User:
        user = UserRepo.get(db, user_id)
        if not user:
            raise NotFound("User not found")
        UserService._check_manageable(caller, user.role, user.venue_id)
        return user

    @staticmethod
    def update_user(
        db: Session,
        caller: Caller,
        user_id: int,
        name: Optional[str] = None,
        role: Optional[str] = None,
        guest_limit: Optional[int] = None,
        active: Optional[bool] = None,
    ) -> User:
        user = UserService.get_user(db, caller, user_id)

        if role is not None and role != user.role:
            UserService._check_manageable(caller, role, user.venue_id)
            if role != UserRole.SUPER_ADMIN.value and user.venue_id is None:
                raise ValidationError("A venue is required for roles other than super_admin")
            user.role = role
        if name is not None:
            user.name = name.strip()
        if guest_limit is not None:
            user.guest_limit = guest_limit
        if active is not None:
            if not active and user.id == caller.user_id:
                raise ValidationError("You cannot deactivate your own account")
            user.active = active

        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def deactivate_user(db: Session, caller: Caller, user_id: int) -> User:
        return UserService.update_user(db, caller, user_id, active=False)

    @staticmethod
    def resend_invite(db: Session, caller: Caller, identity, user_id: int) -> Optional[str]:
        user = UserService.get_user(db, caller, user_id)
        return identity.invite_link(user.email)


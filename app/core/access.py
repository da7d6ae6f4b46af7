"""
Caller identity and role checks

Every ledger operation receives an explicit Caller instead of reading
session state, so the same service code runs behind HTTP, websockets and
tests.
"""

from dataclasses import dataclass
from typing import Optional

from app.core.errors import Forbidden
from app.models import User, UserRole

ADMIN_ROLES = (UserRole.SUPER_ADMIN.value, UserRole.VENUE_ADMIN.value)
DOOR_ROLES = (UserRole.SUPER_ADMIN.value, UserRole.VENUE_ADMIN.value, UserRole.DOOR.value)
STAFF_ROLES = (
    UserRole.SUPER_ADMIN.value,
    UserRole.VENUE_ADMIN.value,
    UserRole.DOOR.value,
    UserRole.DJ.value,
)


@dataclass(frozen=True)
class Caller:
    user_id: int
    role: str
    venue_id: Optional[int]

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        return cls(user_id=user.id, role=user.role, venue_id=user.venue_id)

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN.value

    @property
    def is_dj(self) -> bool:
        return self.role == UserRole.DJ.value


def require_role(caller: Caller, *roles: str) -> None:
    if caller.role not in roles:
        raise Forbidden(f"Role '{caller.role}' is not allowed to do this")


def can_access_venue(caller: Caller, venue_id: int) -> bool:
    return caller.is_super_admin or caller.venue_id == venue_id


def require_venue_access(caller: Caller, venue_id: int) -> None:
    if not can_access_venue(caller, venue_id):
        raise Forbidden("You do not have access to this venue")


def require_venue_role(caller: Caller, venue_id: int, *roles: str) -> None:
    """Role check followed by venue scoping (super admins see every venue)"""
    require_role(caller, *roles)
    require_venue_access(caller, venue_id)

"""
Guest listing: attribution selectors, filtering, sorting and counts
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Union

from sqlalchemy.orm import Session

from app.core.access import STAFF_ROLES, Caller, require_venue_role
from app.core.errors import ValidationError
from app.models import Guest, GuestStatus
from app.services.repositories import GuestRepo
from app.utils.collation import korean_sort_key

EXTERNAL_PREFIX = "ext:"
SORT_CREATED = "created"
SORT_NAME = "name"
SORT_MODES = (SORT_CREATED, SORT_NAME)


@dataclass(frozen=True)
class AllGuests:
    def to_wire(self) -> str:
        return "all"


@dataclass(frozen=True)
class StaffUser:
    user_id: int

    def to_wire(self) -> str:
        return str(self.user_id)


@dataclass(frozen=True)
class ExternalLink:
    link_id: int

    def to_wire(self) -> str:
        return f"{EXTERNAL_PREFIX}{self.link_id}"


Selector = Union[AllGuests, StaffUser, ExternalLink]


def parse_selector(raw: str) -> Selector:
    """Parse the wire form: "all", "<userId>" or "ext:<linkId>"."""
    value = (raw or "all").strip()
    if value == "all":
        return AllGuests()
    try:
        if value.startswith(EXTERNAL_PREFIX):
            return ExternalLink(int(value[len(EXTERNAL_PREFIX):]))
        return StaffUser(int(value))
    except ValueError:
        raise ValidationError(f"Invalid attribution selector: {raw!r}")


def matches(guest: Guest, selector: Selector) -> bool:
    if isinstance(selector, StaffUser):
        return guest.staff_user_id == selector.user_id
    if isinstance(selector, ExternalLink):
        return guest.external_link_id == selector.link_id
    return True


def filter_guests(guests: Iterable[Guest], selector: Selector) -> List[Guest]:
    return [g for g in guests if g.status != GuestStatus.DELETED.value and matches(g, selector)]


def sort_guests(guests: Iterable[Guest], mode: str = SORT_CREATED) -> List[Guest]:
    """Chronological (default) or Korean-aware alphabetical; both stable"""
    chronological = sorted(guests, key=lambda g: (g.created_at, g.id))
    if mode == SORT_CREATED:
        return chronological
    if mode == SORT_NAME:
        return sorted(chronological, key=lambda g: korean_sort_key(g.name))
    raise ValidationError(f"Unknown sort mode: {mode!r}")


def count_by_status(guests: Iterable[Guest]) -> Dict[str, int]:
    counts = {"total": 0, GuestStatus.PENDING.value: 0, GuestStatus.CHECKED.value: 0}
    for guest in guests:
        if guest.status == GuestStatus.DELETED.value:
            continue
        counts["total"] += 1
        counts[guest.status] += 1
    return counts


class GuestListingService:
    """Staff-facing guest lists for one venue and date"""

    @staticmethod
    def list_guests(
        db: Session,
        caller: Caller,
        venue_id: int,
        on_date: date,
        selector: Selector = AllGuests(),
        sort: str = SORT_CREATED,
    ) -> Dict:
        require_venue_role(caller, venue_id, *STAFF_ROLES)
        if caller.is_dj:
            # DJs only ever see their own list
            selector = StaffUser(caller.user_id)

        guests = sort_guests(filter_guests(GuestRepo.list_active(db, venue_id, on_date), selector), sort)
        return {
            "guests": guests,
            "counts": count_by_status(guests),
            "selector": selector.to_wire(),
            "sort": sort,
        }

import enum


class VenueCategory(str, enum.Enum):
    CLUB = "club"
    BAR = "bar"
    LOUNGE = "lounge"
    FESTIVAL = "festival"
    PRIVATE = "private"


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    VENUE_ADMIN = "venue_admin"
    DOOR = "door"
    DJ = "dj"


class GuestStatus(str, enum.Enum):
    PENDING = "pending"
    CHECKED = "checked"
    DELETED = "deleted"

"""
Guest name normalization
"""

from app.core.errors import ValidationError


def normalize_guest_name(raw: str) -> str:
    """Trim, collapse inner whitespace and upper-case a guest name"""
    name = " ".join((raw or "").split()).upper()
    if not name:
        raise ValidationError("Guest name is required")
    return name

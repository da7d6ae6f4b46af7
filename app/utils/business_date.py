"""
Business-day date helpers

Club nights start around 23:00 and run until 05:00-06:00, so the hours
after midnight still belong to the previous night. Anything before
DAY_CHANGE_HOUR is attributed to yesterday's date:

    2025-02-19 23:00 -> 2025-02-19
    2025-02-20 02:00 -> 2025-02-19
    2025-02-20 07:00 -> 2025-02-20
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings

_YMD_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def local_now() -> datetime:
    """Current wall-clock time in the venue timezone"""
    return datetime.now(ZoneInfo(settings.TIMEZONE))


def get_business_date(now: Optional[datetime] = None, cutoff_hour: Optional[int] = None) -> date:
    """Map a local wall-clock time to the logical event date"""
    if now is None:
        now = local_now()
    if cutoff_hour is None:
        cutoff_hour = settings.DAY_CHANGE_HOUR

    if now.hour < cutoff_hour:
        return (now - timedelta(days=1)).date()
    return now.date()


def format_date_display(value: str) -> str:
    """Render YYYY-MM-DD (or an ISO timestamp) as YYYY.MM.DD"""
    match = _YMD_RE.match(value)
    if match:
        year, month, day = match.groups()
        return f"{year}.{month}.{day}"

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%Y.%m.%d")

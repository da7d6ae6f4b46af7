"""
Public API routes - no authentication required
"""

from fastapi import APIRouter

from app.core.config import settings
from app.utils.business_date import format_date_display, get_business_date, local_now
from app.utils.responses import success_response

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/business-date")
async def business_date():
    """Current business date; the night rolls over at DAY_CHANGE_HOUR local time"""
    now = local_now()
    current = get_business_date(now)
    return success_response(
        message="Business date retrieved",
        data={
            "date": current.isoformat(),
            "display": format_date_display(current.isoformat()),
            "timezone": settings.TIMEZONE,
            "day_change_hour": settings.DAY_CHANGE_HOUR,
            "now": now.isoformat()
        }
    )

"""
Link-holder API routes - the link token is the only credential
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.schemas.guest import GuestResponse, LinkGuestCreate
from app.schemas.link import LinkPublic
from app.schemas.venue import VenuePublic
from app.services.checkin_service import CheckInService
from app.services.link_service import LinkService
from app.api.ws import websocket_manager
from app.utils.security import rate_limit_check, get_client_ip
from app.utils.responses import success_response, rate_limit_error

router = APIRouter()

# Broadcasts go through the check-in service so every guest change looks the same on the wire
checkin_service = CheckInService(websocket_manager)

@router.get("/links/{token}")
async def validate_link(
    token: str,
    request: Request,
    db: Session = Depends(get_db)
):
    """Check a link and show its venue, quota and registered guests"""
    if not rate_limit_check(get_client_ip(request)):
        return rate_limit_error()

    result = LinkService.validate_link(db, token)
    link = result["link"]

    return success_response(
        message="Link is valid",
        data={
            "link": LinkPublic.model_validate(link).model_dump(mode="json"),
            "venue": VenuePublic.model_validate(result["venue"]).model_dump(mode="json") if result["venue"] else None,
            "remaining": link.max_guests - link.used_guests,
            "guests": [GuestResponse.model_validate(g).model_dump(mode="json") for g in result["guests"]]
        }
    )

@router.post("/links/{token}/guests")
async def register_guest(
    token: str,
    request: Request,
    payload: LinkGuestCreate,
    db: Session = Depends(get_db)
):
    """Register a guest through the link, consuming one slot"""
    if not rate_limit_check(get_client_ip(request)):
        return rate_limit_error()

    guest = LinkService.register_guest(db, token, payload.guest_name, payload.date)
    await checkin_service.broadcast_guest_update(guest, "guest_added")

    return success_response(
        message="Guest registered",
        data=GuestResponse.model_validate(guest).model_dump(mode="json"),
        status_code=201
    )

@router.delete("/links/{token}/guests/{guest_id}")
async def remove_guest(
    token: str,
    guest_id: int,
    request: Request,
    db: Session = Depends(get_db)
):
    """Withdraw a pending guest registered through this link"""
    if not rate_limit_check(get_client_ip(request)):
        return rate_limit_error()

    guest = LinkService.remove_guest(db, token, guest_id)
    await checkin_service.broadcast_guest_update(guest, "guest_deleted")

    return success_response(
        message="Guest removed",
        data=GuestResponse.model_validate(guest).model_dump(mode="json")
    )

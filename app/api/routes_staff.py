"""
Staff API routes - door staff, DJs and venue admins working the guest list
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.access import Caller
from app.core.db import get_db
from app.models import User
from app.schemas.guest import GuestCreate, GuestResponse, GuestUpdate
from app.schemas.user import UserResponse
from app.services.checkin_service import CheckInService
from app.services.guest_listing import GuestListingService, SORT_CREATED, parse_selector
from app.services.guest_service import GuestService
from app.api.ws import websocket_manager
from app.utils.business_date import get_business_date
from app.utils.security import get_caller, get_current_user
from app.utils.responses import success_response

router = APIRouter()

checkin_service = CheckInService(websocket_manager)

def _guest_data(guest) -> dict:
    return GuestResponse.model_validate(guest).model_dump(mode="json")

@router.get("/me")
async def whoami(user: User = Depends(get_current_user)):
    """Signed-in staff account"""
    return success_response(
        message="Current user",
        data=UserResponse.model_validate(user).model_dump(mode="json")
    )

@router.get("/venues/{venue_id}/guests")
async def list_guests(
    venue_id: int,
    on_date: Optional[date] = Query(default=None, alias="date"),
    selector: str = Query(default="all"),
    sort: str = Query(default=SORT_CREATED),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Guest list of one venue night, filtered by attribution and sorted"""
    on_date = on_date or get_business_date()
    result = GuestListingService.list_guests(
        db, caller, venue_id, on_date,
        selector=parse_selector(selector),
        sort=sort
    )

    return success_response(
        message="Guest list retrieved",
        data={
            "date": on_date.isoformat(),
            "selector": result["selector"],
            "sort": result["sort"],
            "counts": result["counts"],
            "guests": [_guest_data(g) for g in result["guests"]]
        }
    )

@router.post("/venues/{venue_id}/guests")
async def create_guest(
    venue_id: int,
    payload: GuestCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Add a guest to the list"""
    guest = GuestService.create_guest(db, caller, venue_id, payload.name, payload.date, payload.dj_user_id)
    await checkin_service.broadcast_guest_update(guest, "guest_added")

    return success_response(message="Guest added", data=_guest_data(guest), status_code=201)

@router.patch("/guests/{guest_id}")
async def rename_guest(
    guest_id: int,
    payload: GuestUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Correct the name of a pending guest"""
    guest = GuestService.rename_guest(db, caller, guest_id, payload.name)
    await checkin_service.broadcast_guest_update(guest, "guest_updated")

    return success_response(message="Guest updated", data=_guest_data(guest))

@router.post("/guests/{guest_id}/check-in")
async def check_in_guest(
    guest_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Mark a guest as arrived"""
    guest = await checkin_service.check_in(db, caller, guest_id)
    return success_response(message="Guest checked in", data=_guest_data(guest))

@router.post("/guests/{guest_id}/undo-check-in")
async def undo_check_in(
    guest_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Return a checked guest to pending"""
    guest = await checkin_service.undo_check_in(db, caller, guest_id)
    return success_response(message="Check-in undone", data=_guest_data(guest))

@router.delete("/guests/{guest_id}")
async def delete_guest(
    guest_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Remove a guest from the list (soft delete)"""
    guest = await checkin_service.delete_guest(db, caller, guest_id)
    return success_response(message="Guest deleted", data=_guest_data(guest))

"""
Admin API routes - venue admins and super admins
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.access import Caller
from app.core.db import get_db
from app.schemas.link import LinkCreate, LinkResponse
from app.schemas.user import UserCreate, UserResponse, UserUpdate
from app.schemas.venue import VenueCreate, VenueResponse, VenueUpdate
from app.services.excel_service import ExcelService
from app.services.identity import get_identity_provider
from app.services.link_service import LinkService, link_url
from app.services.qr_service import QRService
from app.services.user_service import UserService
from app.services.venue_service import VenueService
from app.utils.business_date import get_business_date
from app.utils.security import get_caller
from app.utils.responses import success_response

router = APIRouter()

def _venue_data(venue) -> dict:
    return VenueResponse.model_validate(venue).model_dump(mode="json")

def _user_data(user) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")

def _link_data(link) -> dict:
    return LinkResponse.from_link(link, link_url(link.token)).model_dump(mode="json")

# -------- venues --------

@router.post("/venues")
async def create_venue(
    payload: VenueCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Create a new venue"""
    venue = VenueService.create_venue(
        db, caller,
        name=payload.name,
        category=payload.category.value,
        address=payload.address,
        description=payload.description
    )
    return success_response(message="Venue created successfully", data=_venue_data(venue), status_code=201)

@router.get("/venues")
async def list_venues(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """List venues visible to the caller"""
    venues = VenueService.list_venues(db, caller, include_inactive=include_inactive)
    return success_response(message="Venues retrieved", data=[_venue_data(v) for v in venues])

@router.patch("/venues/{venue_id}")
async def update_venue(
    venue_id: int,
    payload: VenueUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Update venue details"""
    venue = VenueService.update_venue(
        db, caller, venue_id,
        name=payload.name,
        category=payload.category.value if payload.category else None,
        address=payload.address,
        description=payload.description
    )
    return success_response(message="Venue updated", data=_venue_data(venue))

@router.post("/venues/{venue_id}/deactivate")
async def deactivate_venue(
    venue_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    venue = VenueService.set_active(db, caller, venue_id, False)
    return success_response(message="Venue deactivated", data=_venue_data(venue))

@router.post("/venues/{venue_id}/activate")
async def activate_venue(
    venue_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    venue = VenueService.set_active(db, caller, venue_id, True)
    return success_response(message="Venue activated", data=_venue_data(venue))

# -------- users --------

@router.post("/users")
async def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Create a staff account and return its invitation link when no password was set"""
    result = UserService.create_user(
        db, caller, get_identity_provider(),
        email=payload.email,
        name=payload.name,
        role=payload.role.value,
        venue_id=payload.venue_id,
        guest_limit=payload.guest_limit,
        password=payload.password
    )
    return success_response(
        message="User created successfully",
        data={"user": _user_data(result["user"]), "invite_link": result["invite_link"]},
        status_code=201
    )

@router.get("/users")
async def list_users(
    venue_id: Optional[int] = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """List staff accounts; venue admins only see their own venue"""
    users = UserService.list_users(db, caller, venue_id)
    return success_response(message="Users retrieved", data=[_user_data(u) for u in users])

@router.patch("/users/{user_id}")
async def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Update a staff account"""
    user = UserService.update_user(
        db, caller, user_id,
        name=payload.name,
        role=payload.role.value if payload.role else None,
        guest_limit=payload.guest_limit,
        active=payload.active
    )
    return success_response(message="User updated", data=_user_data(user))

@router.post("/users/{user_id}/deactivate")
async def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    user = UserService.deactivate_user(db, caller, user_id)
    return success_response(message="User deactivated", data=_user_data(user))

@router.post("/users/{user_id}/resend-invite")
async def resend_invite(
    user_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Generate a fresh password setup link"""
    invite_link = UserService.resend_invite(db, caller, get_identity_provider(), user_id)
    return success_response(message="Invitation generated", data={"invite_link": invite_link})

# -------- external links --------

@router.post("/venues/{venue_id}/links")
async def create_link(
    venue_id: int,
    payload: LinkCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Create an external DJ link"""
    link = LinkService.create_link(
        db, caller, venue_id,
        dj_name=payload.dj_name,
        event=payload.event,
        on_date=payload.date,
        max_guests=payload.max_guests,
        expires_at=payload.expires_at
    )
    return success_response(message="Link created successfully", data=_link_data(link), status_code=201)

@router.get("/venues/{venue_id}/links")
async def list_links(
    venue_id: int,
    on_date: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """List external links of a venue, optionally for one date"""
    links = LinkService.list_links(db, caller, venue_id, on_date)
    return success_response(message="Links retrieved", data=[_link_data(l) for l in links])

@router.post("/links/{link_id}/deactivate")
async def deactivate_link(
    link_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Disable a link; guests already registered stay on the list"""
    link = LinkService.deactivate_link(db, caller, link_id)
    return success_response(message="Link deactivated", data=_link_data(link))

@router.get("/links/{link_id}/qr.png")
async def get_link_qr(
    link_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """QR code image of the registration URL"""
    link = LinkService.get_link(db, caller, link_id)
    qr_bytes = QRService.generate_link_qr(link.token)

    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=link_{link.id}.png"}
    )

# -------- export --------

@router.get("/venues/{venue_id}/guests/export.xlsx")
async def export_guest_list(
    venue_id: int,
    on_date: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller)
):
    """Export one night's guest list to Excel"""
    on_date = on_date or get_business_date()
    excel_content = ExcelService.export_guest_list(db, caller, venue_id, on_date)

    return Response(
        content=excel_content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename=guests_{venue_id}_{on_date.isoformat()}.xlsx"}
    )

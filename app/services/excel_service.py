"""
Excel export service for guest lists
"""

import io
from datetime import date
from typing import Dict, List

import pandas as pd
from sqlalchemy.orm import Session

from app.core.access import ADMIN_ROLES, Caller, require_venue_role
from app.models import ExternalDJLink, Guest, User
from app.services.guest_listing import SORT_CREATED, sort_guests
from app.services.repositories import GuestRepo

class ExcelService:
    """Service for exporting guest lists to Excel"""

    COLUMNS = ['Name', 'Status', 'Check-in Time', 'Source', 'Created At']

    @staticmethod
    def describe_source(guest: Guest, users: Dict[int, User], links: Dict[int, ExternalDJLink]) -> str:
        """Human readable attribution for a guest row"""
        if guest.external_link_id is not None:
            link = links.get(guest.external_link_id)
            return f"LINK: {link.dj_name} ({link.event})" if link else "LINK"
        if guest.staff_user_id is not None:
            user = users.get(guest.staff_user_id)
            return user.name if user else f"USER {guest.staff_user_id}"
        return "-"

    @staticmethod
    def build_rows(guests: List[Guest], users: Dict[int, User], links: Dict[int, ExternalDJLink]) -> List[Dict]:
        rows = []
        for guest in guests:
            rows.append({
                'Name': guest.name,
                'Status': guest.status.upper(),
                'Check-in Time': guest.check_in_time.strftime('%Y-%m-%d %H:%M') if guest.check_in_time else '',
                'Source': ExcelService.describe_source(guest, users, links),
                'Created At': guest.created_at.strftime('%Y-%m-%d %H:%M') if guest.created_at else '',
            })
        return rows

    @staticmethod
    def export_guest_list(db: Session, caller: Caller, venue_id: int, on_date: date) -> bytes:
        """Export the active guest list of one venue night to Excel"""
        require_venue_role(caller, venue_id, *ADMIN_ROLES)

        guests = sort_guests(GuestRepo.list_active(db, venue_id, on_date), SORT_CREATED)
        user_ids = {g.staff_user_id for g in guests if g.staff_user_id is not None}
        link_ids = {g.external_link_id for g in guests if g.external_link_id is not None}
        users = {u.id: u for u in db.query(User).filter(User.id.in_(user_ids)).all()} if user_ids else {}
        links = {l.id: l for l in db.query(ExternalDJLink).filter(ExternalDJLink.id.in_(link_ids)).all()} if link_ids else {}

        df = pd.DataFrame(ExcelService.build_rows(guests, users, links), columns=ExcelService.COLUMNS)

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name=on_date.isoformat())

        return buffer.getvalue()

"""
Guest model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, CheckConstraint, inspect
from sqlalchemy.orm import relationship, validates

from app.core.db import Base

class Guest(Base):
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    date = Column(Date, nullable=False, index=True)
    status = Column(String(16), nullable=False, default="pending")  # pending, checked, deleted
    check_in_time = Column(DateTime, nullable=True)

    # Attribution: a staff user, an external link, or neither
    staff_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    external_link_id = Column(Integer, ForeignKey("external_dj_links.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    staff_user = relationship("User")
    external_link = relationship("ExternalDJLink", back_populates="guests")

    __table_args__ = (
        CheckConstraint(
            "staff_user_id IS NULL OR external_link_id IS NULL",
            name="ck_guest_single_attribution",
        ),
        CheckConstraint("status IN ('pending', 'checked', 'deleted')", name="ck_guest_status"),
    )

    @validates("staff_user_id", "external_link_id")
    def _attribution_is_immutable(self, key, value):
        state = inspect(self)
        if state.persistent and getattr(self, key) != value:
            raise ValueError(f"Guest attribution ({key}) cannot be changed")
        return value

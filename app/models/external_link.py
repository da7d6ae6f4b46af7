"""
External DJ link model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base

class ExternalDJLink(Base):
    __tablename__ = "external_dj_links"

    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False, index=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    dj_name = Column(String(100), nullable=False)
    event = Column(String(200), nullable=False)
    date = Column(Date, nullable=False, index=True)
    max_guests = Column(Integer, nullable=False, default=5)
    used_guests = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    venue = relationship("Venue", back_populates="links")
    guests = relationship("Guest", back_populates="external_link")

    __table_args__ = (
        CheckConstraint("used_guests >= 0 AND used_guests <= max_guests", name="ck_link_used_within_max"),
        CheckConstraint("max_guests >= 1", name="ck_link_max_positive"),
    )

"""
Event models for Tickets Service.
Events carry their own capacity counters; attendees are kept in a separate
table so a user id can only appear once per event.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer,
    Numeric, String, Text, UniqueConstraint
)

from tickets_service.models.base import Base, generate_id, utc_now


class Event(Base):
    """
    Event with capacity tracking.
    sold_seats only ever grows. A max_seats of None or 0 means no ceiling.
    """

    __tablename__ = "events"

    id = Column(String(64), primary_key=True, default=generate_id)

    # Descriptive fields
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    location = Column(String(500), nullable=False, default="")
    category = Column(String(50), nullable=True, index=True)
    date = Column(String(100), nullable=True)  # Display text, e.g. "Sat, Nov 2 at 7pm"
    iso_date = Column(DateTime(timezone=True), nullable=True, index=True)
    image_url = Column(String(1000), nullable=True)
    source_url = Column(String(1000), nullable=True)
    is_user_created = Column(Boolean, nullable=False, default=False)

    # Pricing and capacity
    price_value = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    max_seats = Column(Integer, nullable=True)
    sold_seats = Column(Integer, nullable=False, default=0)

    # Ownership
    creator_id = Column(String(128), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        CheckConstraint('price_value >= 0', name='check_price_value_positive'),
        CheckConstraint('sold_seats >= 0', name='check_sold_seats_positive'),
        CheckConstraint('max_seats IS NULL OR max_seats >= 0', name='check_max_seats_positive'),
    )

    def __repr__(self):
        return f"<Event(id='{self.id}', title='{self.title}', sold={self.sold_seats}/{self.max_seats})>"

    @property
    def is_sold_out(self) -> bool:
        """An event without a ceiling never sells out."""
        if not self.max_seats:
            return False
        return (self.sold_seats or 0) >= self.max_seats

    @property
    def seats_left(self) -> Optional[int]:
        if not self.max_seats:
            return None
        return max(0, self.max_seats - (self.sold_seats or 0))

    @property
    def revenue(self) -> Decimal:
        return Decimal(self.sold_seats or 0) * Decimal(self.price_value or 0)

    def to_dict(self) -> dict:
        """Convert event to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "category": self.category,
            "date": self.date,
            "iso_date": self.iso_date.isoformat() if self.iso_date else None,
            "image_url": self.image_url,
            "source_url": self.source_url,
            "is_user_created": self.is_user_created,
            "price_value": float(self.price_value or 0),
            "max_seats": self.max_seats,
            "sold_seats": self.sold_seats or 0,
            "creator_id": self.creator_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class EventAttendee(Base):
    """
    Attendee set membership for an event.
    """

    __tablename__ = "event_attendees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(64), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        UniqueConstraint('event_id', 'user_id', name='unique_event_attendee'),
        Index('idx_attendee_user_event', 'user_id', 'event_id'),
    )

    def __repr__(self):
        return f"<EventAttendee(event_id='{self.event_id}', user_id='{self.user_id}')>"

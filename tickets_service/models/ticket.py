"""
Ticket model for Tickets Service.
A ticket is issued once and redeemed at most once.
"""

from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import (
    CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer,
    Numeric, String, Text
)

from tickets_service.models.base import Base, generate_id, utc_now


class TicketStatus(PyEnum):
    """Ticket status enumeration."""
    ACTIVE = "active"   # Issued, not yet scanned at the door
    USED = "used"       # Checked in; terminal


class Ticket(Base):
    """
    Ticket held by a user for one seat at an event.
    """

    __tablename__ = "tickets"

    id = Column(String(64), primary_key=True, default=generate_id)
    legacy_id = Column(String(64), nullable=True, index=True)  # Pre-assignment placeholder, e.g. "T-4F9K2Q"

    event_id = Column(String(64), ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    user_name = Column(String(255), nullable=False, default="")

    qr_code_data = Column(Text, nullable=True)
    status = Column(
        Enum(TicketStatus, values_callable=lambda statuses: [s.value for s in statuses], name="ticket_status"),
        nullable=False,
        default=TicketStatus.ACTIVE,
        index=True
    )

    purchase_date = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    redeemed_at = Column(DateTime(timezone=True), nullable=True)

    seat_number = Column(Integer, nullable=True)
    price_paid = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    __table_args__ = (
        CheckConstraint('price_paid >= 0', name='check_price_paid_positive'),
        CheckConstraint('seat_number IS NULL OR seat_number > 0', name='check_seat_number_positive'),
        Index('idx_ticket_event_user', 'event_id', 'user_id'),
    )

    def __repr__(self):
        return f"<Ticket(id='{self.id}', event_id='{self.event_id}', status='{self.status.value}')>"

    @property
    def is_active(self) -> bool:
        return self.status == TicketStatus.ACTIVE

    @property
    def is_used(self) -> bool:
        return self.status == TicketStatus.USED

    def to_dict(self) -> dict:
        """Convert ticket to dictionary representation."""
        return {
            "id": self.id,
            "legacy_id": self.legacy_id,
            "event_id": self.event_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "qr_code_data": self.qr_code_data,
            "status": self.status.value if self.status else None,
            "purchase_date": self.purchase_date.isoformat() if self.purchase_date else None,
            "redeemed_at": self.redeemed_at.isoformat() if self.redeemed_at else None,
            "seat_number": self.seat_number,
            "price_paid": float(self.price_paid or 0),
        }

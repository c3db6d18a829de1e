from tickets_service.models.base import Base
from tickets_service.models.event import Event, EventAttendee
from tickets_service.models.preferences import UserPreferences
from tickets_service.models.ticket import Ticket, TicketStatus

__all__ = [
    "Base",
    "Event",
    "EventAttendee",
    "Ticket",
    "TicketStatus",
    "UserPreferences",
]

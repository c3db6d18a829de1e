"""
Domain exceptions for Tickets Service.
Each error carries a stable error code and a short user-safe message.
"""

from typing import Any, Dict, Optional


class TicketingError(Exception):
    """Base error for ticketing operations."""

    error_code = "TICKETING_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


class NotFoundError(TicketingError):
    """Raised when an event or ticket id does not resolve."""

    error_code = "NOT_FOUND"
    status_code = 404


class EventNotFoundError(NotFoundError):
    error_code = "EVENT_NOT_FOUND"

    def __init__(self, event_id: str):
        super().__init__("Event not found", {"event_id": event_id})
        self.event_id = event_id


class TicketNotFoundError(NotFoundError):
    error_code = "TICKET_NOT_FOUND"

    def __init__(self, ticket_id: str):
        super().__init__("Ticket not found", {"ticket_id": ticket_id})
        self.ticket_id = ticket_id


class StorageError(TicketingError):
    """Raised when the underlying persistence call fails."""

    error_code = "STORAGE_ERROR"
    status_code = 503


class InvalidPayloadError(TicketingError):
    """Raised when scanned QR data cannot be decoded into a ticket reference."""

    error_code = "INVALID_PAYLOAD"
    status_code = 400

    def __init__(self, message: str = "Invalid QR code"):
        super().__init__(message)


class SoldOutError(TicketingError):
    """Raised when an event has no seats left."""

    error_code = "SOLD_OUT"
    status_code = 409

    def __init__(self, event_id: str):
        super().__init__("Event is sold out", {"event_id": event_id})
        self.event_id = event_id


class DuplicateTicketError(TicketingError):
    """Raised when the user already holds a ticket for the event."""

    error_code = "DUPLICATE_TICKET"
    status_code = 409

    def __init__(self, event_id: str, ticket_id: str):
        super().__init__(
            "You already have a ticket for this event",
            {"event_id": event_id, "ticket_id": ticket_id},
        )
        self.event_id = event_id
        self.ticket_id = ticket_id


class PermissionDeniedError(TicketingError):
    """Raised when the caller is not allowed to act on an event."""

    error_code = "PERMISSION_DENIED"
    status_code = 403

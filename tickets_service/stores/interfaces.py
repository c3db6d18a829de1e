"""
Storage interfaces for Tickets Service.

Services never touch sessions directly. They open a transaction on a
TicketingStorage and work against the event, ticket and preference stores
bound to it; everything done inside one transaction commits or rolls back
together.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Dict, List, Optional

from tickets_service.models import Event, Ticket, UserPreferences


class EventStore(ABC):
    """Persistent records of events, including capacity counters."""

    @abstractmethod
    def create_event(self, data: Dict[str, Any]) -> Event:
        """Persist a new event with sold_seats = 0 and a store-assigned id."""

    @abstractmethod
    def get_event(self, event_id: str) -> Optional[Event]:
        pass

    @abstractmethod
    def list_events(self) -> List[Event]:
        """All events ordered by iso_date ascending, undated events last."""

    @abstractmethod
    def list_events_by_creator(self, creator_id: str) -> List[Event]:
        pass

    @abstractmethod
    def update_capacity(self, event_id: str, max_seats: Optional[int]) -> bool:
        """Overwrite max_seats. Returns False when the event does not exist."""

    @abstractmethod
    def record_sale(self, event_id: str, user_id: str, enforce_capacity: bool = True) -> Optional[int]:
        """
        Atomically increment sold_seats and add user_id to the attendee set.

        Args:
            event_id: Event to sell a seat for
            user_id: Buyer, added to attendees at most once
            enforce_capacity: Guard the increment with max_seats

        Returns:
            The post-increment sold count, or None when the event is
            missing or already at capacity
        """

    @abstractmethod
    def list_attendees(self, event_id: str) -> List[str]:
        pass


class TicketStore(ABC):
    """Persistent records of issued tickets."""

    @abstractmethod
    def create_ticket(self, data: Dict[str, Any]) -> Ticket:
        """Persist a new active ticket with a store-assigned id."""

    @abstractmethod
    def update_qr_code(self, ticket_id: str, qr_code_data: str) -> bool:
        pass

    @abstractmethod
    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        pass

    @abstractmethod
    def find_ticket_by_legacy_id(self, legacy_id: str) -> Optional[Ticket]:
        pass

    @abstractmethod
    def find_ticket_for_user(self, event_id: str, user_id: str) -> Optional[Ticket]:
        pass

    @abstractmethod
    def list_tickets_for_user(self, user_id: str) -> List[Ticket]:
        pass

    @abstractmethod
    def list_tickets_for_event(self, event_id: str) -> List[Ticket]:
        pass

    @abstractmethod
    def set_status_used(self, ticket_id: str, redeemed_at: datetime) -> bool:
        """
        Transition an active ticket to used.
        Returns False when the ticket is missing or already used; an
        existing redeemed_at is never overwritten.
        """


class PreferencesStore(ABC):
    """Per-user saved events, reminders and history."""

    @abstractmethod
    def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        pass

    @abstractmethod
    def save_preferences(self, user_id: str, data: Dict[str, Any]) -> UserPreferences:
        """Replace only the keys present in data, creating the record if needed."""


class StorageTransaction:
    """Stores bound to a single transaction."""

    def __init__(self, events: EventStore, tickets: TicketStore, preferences: PreferencesStore):
        self.events = events
        self.tickets = tickets
        self.preferences = preferences


class TicketingStorage(ABC):
    """
    Unit of work over the ticketing stores.

    Usage:
        with storage.transaction() as tx:
            event = tx.events.get_event(event_id)
            tx.tickets.create_ticket({...})

    Leaving the block normally commits; an exception rolls back and is
    re-raised. Persistence failures surface as StorageError.
    """

    name = "abstract"

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        pass

    @abstractmethod
    async def initialize(self):
        pass

    @abstractmethod
    async def close(self):
        pass

    @abstractmethod
    def health_check(self) -> bool:
        pass

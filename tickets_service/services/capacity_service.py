"""
Capacity Service for Tickets Service.
Tracks sold seats against event capacity and serves host dashboard stats.
"""

from decimal import Decimal
from typing import Any, Dict, Optional
import logging

from tickets_service.core.config import TicketsConfig, config
from tickets_service.core.exceptions import (
    EventNotFoundError, SoldOutError, StorageError
)
from tickets_service.db.redis_client import LockProvider, LockTimeoutError, redis_manager
from tickets_service.models import TicketStatus
from tickets_service.stores import get_storage
from tickets_service.stores.interfaces import StorageTransaction, TicketingStorage

logger = logging.getLogger(__name__)


def event_cache_key(event_id: str) -> str:
    return f"tickets:event:{event_id}"


def event_lock_key(event_id: str) -> str:
    return f"tickets:lock:event:{event_id}"


class CapacityService:
    """
    Capacity management with atomic seat accounting.
    Sales go through a conditional increment so sold_seats never passes max_seats.
    """

    def __init__(self, storage: Optional[TicketingStorage] = None, settings: Optional[TicketsConfig] = None):
        self._storage = storage
        self.settings = settings or config
        self.ticketing_config = None
        self.consistency_config = None
        self.cache_config = None
        self.locks = None

    @property
    def storage(self) -> TicketingStorage:
        return self._storage or get_storage()

    async def _get_configs(self):
        """Get configuration settings."""
        if not self.ticketing_config:
            self.ticketing_config = await self.settings.get_ticketing_config()
        if not self.consistency_config:
            self.consistency_config = await self.settings.get_consistency_config()
        if not self.cache_config:
            self.cache_config = await self.settings.get_cache_config()
        if not self.locks:
            self.locks = LockProvider(
                redis_manager,
                distributed=self.consistency_config["enable_distributed_locks"],
                timeout=self.consistency_config["lock_timeout_seconds"],
                blocking_timeout=self.consistency_config["lock_blocking_timeout_seconds"]
            )

    def event_lock(self, event_id: str):
        """Per-event lock serializing sales and capacity edits."""
        return self.locks.lock(event_lock_key(event_id))

    def sell_seat(self, tx: StorageTransaction, event_id: str, user_id: str) -> int:
        """
        Sell one seat inside an open storage transaction.

        Args:
            tx: Storage transaction the sale belongs to
            event_id: Event to sell a seat for
            user_id: Buyer

        Returns:
            Seat number (the post-increment sold count)

        Raises:
            EventNotFoundError: If the event does not exist
            SoldOutError: If the event is at capacity
        """
        seat_number = tx.events.record_sale(
            event_id,
            user_id,
            enforce_capacity=self.ticketing_config["enable_capacity_checks"]
        )
        if seat_number is not None:
            return seat_number

        if tx.events.get_event(event_id) is None:
            raise EventNotFoundError(event_id)

        logger.warning(f"Sale rejected, event {event_id} is sold out")
        raise SoldOutError(event_id)

    async def record_sale(self, event_id: str, user_id: str) -> int:
        """
        Record a standalone sale: increment sold seats and add the attendee.

        Returns:
            Seat number assigned to the sale
        """
        await self._get_configs()

        try:
            async with self.event_lock(event_id):
                with self.storage.transaction() as tx:
                    seat_number = self.sell_seat(tx, event_id, user_id)
        except LockTimeoutError as e:
            logger.error(f"Could not lock event {event_id} for sale: {e}")
            raise StorageError("Event is busy, please retry", {"event_id": event_id})

        await self.invalidate_event_cache(event_id)
        logger.info(f"Seat {seat_number} sold for event {event_id} to user {user_id}")
        return seat_number

    async def set_event_capacity(self, event_id: str, max_seats: Optional[int]) -> bool:
        """
        Overwrite an event's capacity.

        Lowering capacity below the seats already sold is allowed; further
        sales are then rejected until capacity is raised again.

        Args:
            event_id: Event to update
            max_seats: New capacity, or None for no ceiling

        Returns:
            True if the event was updated, False if it does not exist
        """
        await self._get_configs()

        try:
            async with self.event_lock(event_id):
                with self.storage.transaction() as tx:
                    event = tx.events.get_event(event_id)
                    if event is None:
                        logger.warning(f"Capacity update for unknown event {event_id}")
                        return False

                    if max_seats and max_seats < event.sold_seats:
                        logger.warning(
                            f"Capacity of event {event_id} lowered to {max_seats} "
                            f"below {event.sold_seats} sold seats"
                        )

                    updated = tx.events.update_capacity(event_id, max_seats)
        except LockTimeoutError as e:
            logger.error(f"Could not lock event {event_id} for capacity update: {e}")
            raise StorageError("Event is busy, please retry", {"event_id": event_id})

        await self.invalidate_event_cache(event_id)
        logger.info(f"Capacity of event {event_id} set to {max_seats}")
        return updated

    async def get_event_stats(self, event_id: str) -> Dict[str, Any]:
        """
        Host dashboard stats for an event.

        Raises:
            EventNotFoundError: If the event does not exist
        """
        with self.storage.transaction() as tx:
            event = tx.events.get_event(event_id)
            if event is None:
                raise EventNotFoundError(event_id)
            attendees = tx.events.list_attendees(event_id)
            tickets = tx.tickets.list_tickets_for_event(event_id)

        checked_in = sum(1 for ticket in tickets if ticket.status == TicketStatus.USED)

        return {
            "event_id": event.id,
            "sold_seats": event.sold_seats,
            "max_seats": event.max_seats,
            "seats_left": event.seats_left,
            "is_sold_out": event.is_sold_out,
            "revenue": Decimal(event.revenue).quantize(Decimal("0.01")),
            "attendee_count": len(attendees),
            "checked_in_count": checked_in,
        }

    async def invalidate_event_cache(self, event_id: str):
        """Drop the cached event snapshot after its counters change."""
        if not self.cache_config or not self.cache_config["enabled"]:
            return
        try:
            await redis_manager.delete(event_cache_key(event_id))
        except Exception as e:
            logger.error(f"Failed to invalidate cache for event {event_id}: {e}")


# Global capacity service instance
capacity_service = CapacityService()

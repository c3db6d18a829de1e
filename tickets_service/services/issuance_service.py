"""
Ticket Issuance Service for Tickets Service.
Handles "join event": event resolution, duplicate checks, the seat sale and
ticket creation as one transaction.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from tickets_service.core.config import TicketsConfig, config
from tickets_service.core.exceptions import (
    DuplicateTicketError, EventNotFoundError, StorageError, TicketNotFoundError
)
from tickets_service.db.redis_client import LockTimeoutError
from tickets_service.models import Event, Ticket
from tickets_service.services.capacity_service import CapacityService, capacity_service
from tickets_service.services.qr_codec import QRCodec
from tickets_service.stores import get_storage
from tickets_service.stores.interfaces import StorageTransaction, TicketingStorage

logger = logging.getLogger(__name__)


class TicketIssuanceService:
    """
    Issues tickets against events.

    The sale and the ticket insert share one storage transaction, so a failed
    insert also rolls back the seat count.
    """

    def __init__(self, storage: Optional[TicketingStorage] = None, capacity: Optional[CapacityService] = None,
                 settings: Optional[TicketsConfig] = None):
        self._storage = storage
        self.settings = settings or config
        self.capacity = capacity or capacity_service
        self.ticketing_config = None
        self.codec = None

    @property
    def storage(self) -> TicketingStorage:
        return self._storage or get_storage()

    async def _get_configs(self):
        """Get configuration settings."""
        if not self.ticketing_config:
            self.ticketing_config = await self.settings.get_ticketing_config()
        if not self.codec:
            self.codec = await QRCodec.from_config(self.settings)
        await self.capacity._get_configs()

    def _resolve_event(self, tx: StorageTransaction, event_id: Optional[str],
                       external_event: Optional[Dict[str, Any]]) -> Event:
        """
        Find the event, creating it from external details on its first sale.

        Raises:
            EventNotFoundError: If the event is unknown and no details were supplied
        """
        if event_id:
            event = tx.events.get_event(event_id)
            if event is not None:
                return event

        if not external_event:
            raise EventNotFoundError(event_id or "")

        data = dict(external_event)
        data.pop("sold_seats", None)
        data["creator_id"] = None
        data["is_user_created"] = False
        if event_id:
            data["id"] = event_id

        event = tx.events.create_event(data)
        logger.info(f"Created event {event.id} from external details on first sale")
        return event

    async def join_event(
        self,
        user: Dict[str, Any],
        event_id: Optional[str] = None,
        external_event: Optional[Dict[str, Any]] = None
    ) -> Ticket:
        """
        Issue a ticket for the user.

        Args:
            user: Authenticated user with user_id and name
            event_id: Event to join; may be unknown when external_event is given
            external_event: Details of an externally discovered event

        Returns:
            Issued ticket with its canonical id and QR payload

        Raises:
            EventNotFoundError: If the event cannot be resolved
            DuplicateTicketError: If the user already holds a ticket for the event
            SoldOutError: If the event is at capacity
            StorageError: If persistence fails
        """
        await self._get_configs()

        user_id = str(user["user_id"])
        user_name = user.get("name") or ""
        lock_id = event_id or "external"

        try:
            async with self.capacity.event_lock(lock_id):
                with self.storage.transaction() as tx:
                    event = self._resolve_event(tx, event_id, external_event)

                    if self.ticketing_config["enable_duplicate_prevention"]:
                        existing = tx.tickets.find_ticket_for_user(event.id, user_id)
                        if existing is not None:
                            logger.warning(f"User {user_id} already holds ticket {existing.id} for event {event.id}")
                            raise DuplicateTicketError(event.id, existing.id)

                    seat_number = self.capacity.sell_seat(tx, event.id, user_id)

                    ticket = tx.tickets.create_ticket({
                        "event_id": event.id,
                        "user_id": user_id,
                        "user_name": user_name,
                        "seat_number": seat_number,
                        "price_paid": Decimal(event.price_value or 0),
                    })

                    ticket.qr_code_data = self.codec.encode(ticket)
                    tx.tickets.update_qr_code(ticket.id, ticket.qr_code_data)
        except LockTimeoutError as e:
            logger.error(f"Could not lock event {lock_id} for ticket issuance: {e}")
            raise StorageError("Event is busy, please retry", {"event_id": lock_id})
        except StorageError as e:
            logger.error(f"Ticket issuance failed for user {user_id}: {e}")
            raise

        await self.capacity.invalidate_event_cache(event.id)
        logger.info(f"Ticket {ticket.id} issued for event {event.id}, seat {seat_number}")
        return ticket

    async def get_ticket(self, ticket_id: str) -> Ticket:
        """
        Get a ticket by id.

        Raises:
            TicketNotFoundError: If the ticket does not exist
        """
        with self.storage.transaction() as tx:
            ticket = tx.tickets.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket

    async def list_user_tickets(self, user_id: str) -> List[Ticket]:
        with self.storage.transaction() as tx:
            return tx.tickets.list_tickets_for_user(str(user_id))

    async def list_event_tickets(self, event_id: str) -> List[Ticket]:
        with self.storage.transaction() as tx:
            if tx.events.get_event(event_id) is None:
                raise EventNotFoundError(event_id)
            return tx.tickets.list_tickets_for_event(event_id)


# Global ticket issuance service instance
issuance_service = TicketIssuanceService()

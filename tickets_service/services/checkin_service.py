"""
Check-in Service for Tickets Service.

Door scanning is two-phase: verify reads the ticket behind a scanned QR
payload without changing it, and confirm performs the one-way transition
from active to used.
"""

from typing import Any, Dict, Optional
import logging

from tickets_service.core.config import TicketsConfig, config
from tickets_service.core.exceptions import InvalidPayloadError, StorageError
from tickets_service.db.redis_client import LockProvider, LockTimeoutError, redis_manager
from tickets_service.models import Ticket, TicketStatus
from tickets_service.models.base import utc_now
from tickets_service.services.qr_codec import QRCodec
from tickets_service.stores import get_storage
from tickets_service.stores.interfaces import TicketingStorage

logger = logging.getLogger(__name__)

MESSAGE_VALID = "Valid Ticket"
MESSAGE_USED = "Already Checked In"
MESSAGE_NOT_FOUND = "Ticket not found"
MESSAGE_INVALID = "Invalid QR code"
MESSAGE_UNAVAILABLE = "Verification unavailable, please retry"


class CheckInService:
    """
    Ticket verification and redemption.
    """

    def __init__(self, storage: Optional[TicketingStorage] = None, settings: Optional[TicketsConfig] = None):
        self._storage = storage
        self.settings = settings or config
        self.consistency_config = None
        self.codec = None
        self.locks = None

    @property
    def storage(self) -> TicketingStorage:
        return self._storage or get_storage()

    async def _get_configs(self):
        """Get configuration settings."""
        if not self.consistency_config:
            self.consistency_config = await self.settings.get_consistency_config()
        if not self.codec:
            self.codec = await QRCodec.from_config(self.settings)
        if not self.locks:
            self.locks = LockProvider(
                redis_manager,
                distributed=self.consistency_config["enable_distributed_locks"],
                timeout=self.consistency_config["lock_timeout_seconds"],
                blocking_timeout=self.consistency_config["lock_blocking_timeout_seconds"]
            )

    @staticmethod
    def _result(valid: bool, state: str, message: str, ticket: Optional[Ticket] = None) -> Dict[str, Any]:
        return {"valid": valid, "state": state, "message": message, "ticket": ticket}

    async def scan_and_verify(self, raw_payload: Optional[str]) -> Dict[str, Any]:
        """
        Resolve scanned QR text to a ticket and report its state.
        Never mutates the ticket and never raises for bad input.

        Args:
            raw_payload: Text decoded from the QR image

        Returns:
            Dictionary with valid, state ("valid", "used" or "invalid"),
            message and the ticket when one was found
        """
        await self._get_configs()

        try:
            reference = self.codec.decode(raw_payload)
        except InvalidPayloadError:
            logger.warning("Scan rejected: payload is not a ticket reference")
            return self._result(False, "invalid", MESSAGE_INVALID)

        try:
            with self.storage.transaction() as tx:
                ticket = tx.tickets.get_ticket(reference)
                if ticket is None:
                    ticket = tx.tickets.find_ticket_by_legacy_id(reference)
        except StorageError as e:
            logger.error(f"Ticket lookup failed for {reference}: {e}")
            return self._result(False, "invalid", MESSAGE_UNAVAILABLE)

        if ticket is None:
            logger.info(f"Scan for unknown ticket {reference}")
            return self._result(False, "invalid", MESSAGE_NOT_FOUND)

        if ticket.status == TicketStatus.USED:
            logger.info(f"Scan for already redeemed ticket {ticket.id}")
            return self._result(True, "used", MESSAGE_USED, ticket)

        return self._result(True, "valid", MESSAGE_VALID, ticket)

    async def confirm_check_in(self, ticket_id: str) -> bool:
        """
        Redeem a ticket: active becomes used and redeemed_at is stamped.

        Args:
            ticket_id: Canonical ticket id

        Returns:
            True if the ticket was redeemed by this call; False if it is
            missing, already used, or storage failed
        """
        await self._get_configs()

        try:
            async with self.locks.lock(f"tickets:lock:ticket:{ticket_id}"):
                with self.storage.transaction() as tx:
                    redeemed = tx.tickets.set_status_used(ticket_id, utc_now())
        except (StorageError, LockTimeoutError) as e:
            logger.error(f"Check-in failed for ticket {ticket_id}: {e}")
            return False

        if redeemed:
            logger.info(f"Ticket {ticket_id} checked in")
        else:
            logger.warning(f"Check-in rejected for ticket {ticket_id}: missing or already used")
        return redeemed


# Global check-in service instance
checkin_service = CheckInService()

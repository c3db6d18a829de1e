"""
Preferences Service for Tickets Service.
Keeps each user's saved events, reminders and history in sync across devices.
"""

from typing import Any, Dict, Optional
import logging

from tickets_service.stores import get_storage
from tickets_service.stores.interfaces import TicketingStorage

logger = logging.getLogger(__name__)


class PreferencesService:

    def __init__(self, storage: Optional[TicketingStorage] = None):
        self._storage = storage

    @property
    def storage(self) -> TicketingStorage:
        return self._storage or get_storage()

    async def get_preferences(self, user_id: str) -> Dict[str, Any]:
        """Stored preferences, or empty defaults for a user who never synced."""
        with self.storage.transaction() as tx:
            preferences = tx.preferences.get_preferences(str(user_id))

        if preferences is None:
            return {
                "user_id": str(user_id),
                "saved_events": [],
                "reminders": [],
                "history": [],
                "updated_at": None,
            }
        return preferences.to_dict()

    async def sync_preferences(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge supplied preference lists into the stored record.

        Args:
            user_id: Owner of the preferences
            data: Any of saved_events, reminders, history; omitted keys are kept

        Returns:
            The stored preferences after the merge
        """
        with self.storage.transaction() as tx:
            preferences = tx.preferences.save_preferences(str(user_id), data)

        logger.info(f"Preferences synced for user {user_id}: {sorted(k for k, v in data.items() if v is not None)}")
        return preferences.to_dict()


# Global preferences service instance
preferences_service = PreferencesService()

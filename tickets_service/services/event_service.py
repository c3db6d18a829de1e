"""
Event Service for Tickets Service.
Host event creation, local search and event lookups.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging

from tickets_service.core.config import TicketsConfig, config
from tickets_service.core.exceptions import EventNotFoundError
from tickets_service.db.redis_client import redis_manager
from tickets_service.models import Event
from tickets_service.services.capacity_service import event_cache_key
from tickets_service.stores import get_storage
from tickets_service.stores.interfaces import TicketingStorage

logger = logging.getLogger(__name__)

CATEGORIES = ("all", "music", "tech", "food", "arts", "sports")
DATE_FILTERS = ("all", "today", "weekend", "week", "next7days", "month")


def date_window(date_filter: str, now: datetime) -> Optional[Tuple[date, date]]:
    """
    Inclusive date range covered by a date filter.

    Args:
        date_filter: One of DATE_FILTERS
        now: Reference time

    Returns:
        (first_day, last_day), or None for "all"
    """
    today = now.astimezone(timezone.utc).date() if now.tzinfo else now.date()

    if date_filter == "all":
        return None
    if date_filter == "today":
        return today, today
    if date_filter == "weekend":
        # Monday is 0; Saturday is 5
        saturday = today + timedelta(days=max(0, 5 - today.weekday()))
        sunday = today + timedelta(days=6 - today.weekday())
        return saturday, sunday
    if date_filter == "week":
        return today, today + timedelta(days=6 - today.weekday())
    if date_filter == "next7days":
        return today, today + timedelta(days=6)
    if date_filter == "month":
        next_month = (today.replace(day=28) + timedelta(days=4)).replace(day=1)
        return today.replace(day=1), next_month - timedelta(days=1)
    raise ValueError(f"Unsupported date filter: {date_filter}")


def _event_day(event: Event) -> Optional[date]:
    if event.iso_date is None:
        return None
    if event.iso_date.tzinfo is not None:
        return event.iso_date.astimezone(timezone.utc).date()
    return event.iso_date.date()


class EventService:
    """
    Event catalog operations.
    """

    def __init__(self, storage: Optional[TicketingStorage] = None, settings: Optional[TicketsConfig] = None):
        self._storage = storage
        self.settings = settings or config
        self.cache_config = None

    @property
    def storage(self) -> TicketingStorage:
        return self._storage or get_storage()

    async def _get_configs(self):
        """Get configuration settings."""
        if not self.cache_config:
            self.cache_config = await self.settings.get_cache_config()

    async def create_event(self, data: Dict[str, Any], host: Dict[str, Any]) -> Event:
        """
        Create an event owned by the host.

        Args:
            data: Event fields
            host: Authenticated user creating the event

        Returns:
            Created event with its store-assigned id
        """
        values = dict(data)
        values.pop("id", None)
        values["creator_id"] = str(host["user_id"])
        values["is_user_created"] = True

        with self.storage.transaction() as tx:
            event = tx.events.create_event(values)

        logger.info(f"Event {event.id} created by host {values['creator_id']}")
        return event

    async def get_event(self, event_id: str) -> Event:
        """
        Get an event by id.

        Raises:
            EventNotFoundError: If the event does not exist
        """
        with self.storage.transaction() as tx:
            event = tx.events.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    async def get_event_snapshot(self, event_id: str) -> Dict[str, Any]:
        """
        Event as a dictionary, served from the Redis cache when caching is enabled.

        Raises:
            EventNotFoundError: If the event does not exist
        """
        await self._get_configs()
        cache_enabled = self.cache_config["enabled"]

        if cache_enabled:
            cached = await redis_manager.get_json(event_cache_key(event_id))
            if cached:
                return cached

        snapshot = (await self.get_event(event_id)).to_dict()

        if cache_enabled:
            await redis_manager.set_json(event_cache_key(event_id), snapshot, ttl=self.cache_config["event_ttl"])
        return snapshot

    async def search_events(
        self,
        query: Optional[str] = None,
        category: str = "all",
        date_filter: str = "all",
        now: Optional[datetime] = None
    ) -> List[Event]:
        """
        Search locally stored events.

        Args:
            query: Case-insensitive text matched against title, description,
                location and category
            category: One of CATEGORIES
            date_filter: One of DATE_FILTERS, applied to iso_date
            now: Reference time for date filters

        Returns:
            Matching events ordered by date
        """
        if category not in CATEGORIES:
            raise ValueError(f"Unsupported category: {category}")
        window = date_window(date_filter, now or datetime.now(timezone.utc))
        needle = (query or "").strip().lower()

        with self.storage.transaction() as tx:
            events = tx.events.list_events()

        results = []
        for event in events:
            if category != "all" and (event.category or "").lower() != category:
                continue
            if window is not None:
                day = _event_day(event)
                if day is None or not window[0] <= day <= window[1]:
                    continue
            if needle:
                haystack = " ".join(
                    value for value in (event.title, event.description, event.location, event.category) if value
                ).lower()
                if needle not in haystack:
                    continue
            results.append(event)

        logger.debug(f"Search '{needle}' ({category}, {date_filter}) matched {len(results)} events")
        return results

    async def list_hosted_events(self, user_id: str) -> List[Event]:
        with self.storage.transaction() as tx:
            return tx.events.list_events_by_creator(str(user_id))

    async def list_attending_events(self, user_id: str) -> List[Event]:
        """Events the user holds a ticket for, in ticket purchase order."""
        with self.storage.transaction() as tx:
            tickets = tx.tickets.list_tickets_for_user(str(user_id))
            events = []
            seen = set()
            for ticket in tickets:
                if ticket.event_id in seen:
                    continue
                seen.add(ticket.event_id)
                event = tx.events.get_event(ticket.event_id)
                if event is not None:
                    events.append(event)
        return events


# Global event service instance
event_service = EventService()

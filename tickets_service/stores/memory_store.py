"""
In-memory stores for Tickets Service.
Used when STORAGE_BACKEND=memory and in tests. Data does not survive a restart.
"""

import copy
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional
import logging

from tickets_service.models import Event, Ticket, TicketStatus, UserPreferences
from tickets_service.models.base import generate_id, utc_now
from tickets_service.stores.interfaces import (
    EventStore, PreferencesStore, StorageTransaction, TicketingStorage, TicketStore
)

logger = logging.getLogger(__name__)

_EPOCH = datetime.min


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class _MemoryData:
    """Rows held as plain dicts; readers always receive fresh model instances."""

    def __init__(self):
        self.events: Dict[str, Dict[str, Any]] = {}
        self.attendees: Dict[str, List[str]] = {}
        self.tickets: Dict[str, Dict[str, Any]] = {}
        self.preferences: Dict[str, Dict[str, Any]] = {}

        self._undo: Optional[Dict[str, Any]] = None

    def begin(self):
        self._undo = None

    def touch(self):
        """Called before the first write of a transaction; read-only transactions copy nothing."""
        if self._undo is None:
            self._undo = self.snapshot()

    def rollback(self) -> bool:
        if self._undo is None:
            return False
        self.restore(self._undo)
        self._undo = None
        return True

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy({
            "events": self.events,
            "attendees": self.attendees,
            "tickets": self.tickets,
            "preferences": self.preferences,
        })

    def restore(self, snapshot: Dict[str, Any]):
        self.events = snapshot["events"]
        self.attendees = snapshot["attendees"]
        self.tickets = snapshot["tickets"]
        self.preferences = snapshot["preferences"]


class MemoryEventStore(EventStore):

    def __init__(self, data: _MemoryData):
        self.data = data

    def _build(self, row: Dict[str, Any]) -> Event:
        return Event(**copy.deepcopy(row))

    def create_event(self, data: Dict[str, Any]) -> Event:
        now = utc_now()
        row = {
            "id": data.get("id") or generate_id(),
            "title": data["title"],
            "description": data.get("description") or "",
            "location": data.get("location") or "",
            "category": data.get("category"),
            "date": data.get("date"),
            "iso_date": data.get("iso_date"),
            "image_url": data.get("image_url"),
            "source_url": data.get("source_url"),
            "is_user_created": bool(data.get("is_user_created", False)),
            "price_value": Decimal(str(data.get("price_value") or "0.00")),
            "max_seats": data.get("max_seats"),
            "sold_seats": 0,
            "creator_id": data.get("creator_id"),
            "created_at": now,
            "updated_at": now,
        }
        self.data.touch()
        self.data.events[row["id"]] = row
        self.data.attendees[row["id"]] = []
        return self._build(row)

    def get_event(self, event_id: str) -> Optional[Event]:
        row = self.data.events.get(event_id)
        return self._build(row) if row else None

    def list_events(self) -> List[Event]:
        rows = sorted(
            self.data.events.values(),
            key=lambda row: (
                row["iso_date"] is None,
                _naive_utc(row["iso_date"]) if row["iso_date"] else _EPOCH,
                _naive_utc(row["created_at"]),
            )
        )
        return [self._build(row) for row in rows]

    def list_events_by_creator(self, creator_id: str) -> List[Event]:
        rows = [row for row in self.data.events.values() if row["creator_id"] == creator_id]
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return [self._build(row) for row in rows]

    def update_capacity(self, event_id: str, max_seats: Optional[int]) -> bool:
        row = self.data.events.get(event_id)
        if row is None:
            return False
        self.data.touch()
        row["max_seats"] = max_seats
        row["updated_at"] = utc_now()
        return True

    def record_sale(self, event_id: str, user_id: str, enforce_capacity: bool = True) -> Optional[int]:
        row = self.data.events.get(event_id)
        if row is None:
            return None
        if enforce_capacity and row["max_seats"] and row["sold_seats"] >= row["max_seats"]:
            return None

        self.data.touch()
        row["sold_seats"] += 1
        row["updated_at"] = utc_now()

        attendees = self.data.attendees.setdefault(event_id, [])
        if user_id not in attendees:
            attendees.append(user_id)
        return row["sold_seats"]

    def list_attendees(self, event_id: str) -> List[str]:
        return list(self.data.attendees.get(event_id, []))


class MemoryTicketStore(TicketStore):

    def __init__(self, data: _MemoryData):
        self.data = data

    def _build(self, row: Dict[str, Any]) -> Ticket:
        return Ticket(**copy.deepcopy(row))

    def _rows(self, **filters) -> List[Dict[str, Any]]:
        return [
            row for row in self.data.tickets.values()
            if all(row[key] == value for key, value in filters.items())
        ]

    def create_ticket(self, data: Dict[str, Any]) -> Ticket:
        row = {
            "id": data.get("id") or generate_id(),
            "legacy_id": data.get("legacy_id"),
            "event_id": data["event_id"],
            "user_id": data["user_id"],
            "user_name": data.get("user_name") or "",
            "qr_code_data": data.get("qr_code_data"),
            "status": TicketStatus.ACTIVE,
            "purchase_date": data.get("purchase_date") or utc_now(),
            "redeemed_at": None,
            "seat_number": data.get("seat_number"),
            "price_paid": Decimal(str(data.get("price_paid") or "0.00")),
        }
        self.data.touch()
        self.data.tickets[row["id"]] = row
        return self._build(row)

    def update_qr_code(self, ticket_id: str, qr_code_data: str) -> bool:
        row = self.data.tickets.get(ticket_id)
        if row is None:
            return False
        self.data.touch()
        row["qr_code_data"] = qr_code_data
        return True

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        row = self.data.tickets.get(ticket_id)
        return self._build(row) if row else None

    def find_ticket_by_legacy_id(self, legacy_id: str) -> Optional[Ticket]:
        rows = self._rows(legacy_id=legacy_id)
        return self._build(rows[0]) if rows else None

    def find_ticket_for_user(self, event_id: str, user_id: str) -> Optional[Ticket]:
        rows = sorted(self._rows(event_id=event_id, user_id=user_id), key=lambda row: row["purchase_date"])
        return self._build(rows[0]) if rows else None

    def list_tickets_for_user(self, user_id: str) -> List[Ticket]:
        rows = sorted(self._rows(user_id=user_id), key=lambda row: row["purchase_date"], reverse=True)
        return [self._build(row) for row in rows]

    def list_tickets_for_event(self, event_id: str) -> List[Ticket]:
        rows = sorted(self._rows(event_id=event_id), key=lambda row: row["seat_number"] or 0)
        return [self._build(row) for row in rows]

    def set_status_used(self, ticket_id: str, redeemed_at: datetime) -> bool:
        row = self.data.tickets.get(ticket_id)
        if row is None or row["status"] != TicketStatus.ACTIVE:
            return False
        self.data.touch()
        row["status"] = TicketStatus.USED
        row["redeemed_at"] = redeemed_at
        return True


class MemoryPreferencesStore(PreferencesStore):

    FIELDS = ("saved_events", "reminders", "history")

    def __init__(self, data: _MemoryData):
        self.data = data

    def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        row = self.data.preferences.get(user_id)
        return UserPreferences(**copy.deepcopy(row)) if row else None

    def save_preferences(self, user_id: str, data: Dict[str, Any]) -> UserPreferences:
        self.data.touch()
        row = self.data.preferences.setdefault(user_id, {
            "user_id": user_id,
            "saved_events": [],
            "reminders": [],
            "history": [],
            "updated_at": utc_now(),
        })
        for field in self.FIELDS:
            if field in data and data[field] is not None:
                row[field] = copy.deepcopy(list(data[field]))
        row["updated_at"] = utc_now()
        return UserPreferences(**copy.deepcopy(row))


class MemoryTicketingStorage(TicketingStorage):
    """
    Process-local storage.
    Transactions are serialized by a re-entrant lock. The first write of a
    transaction snapshots the data; rollback restores that snapshot.
    """

    name = "memory"

    def __init__(self):
        self._data = _MemoryData()
        self._lock = threading.RLock()
        self._depth = 0

    async def initialize(self):
        logger.info("In-memory ticketing storage initialized")

    async def close(self):
        logger.info("In-memory ticketing storage closed")

    def health_check(self) -> bool:
        return True

    @contextmanager
    def transaction(self) -> Generator[StorageTransaction, None, None]:
        with self._lock:
            outer_undo = self._data._undo
            self._data.begin()
            self._depth += 1
            try:
                yield StorageTransaction(
                    events=MemoryEventStore(self._data),
                    tickets=MemoryTicketStore(self._data),
                    preferences=MemoryPreferencesStore(self._data)
                )
            except Exception:
                if self._data.rollback():
                    logger.debug("In-memory transaction rolled back")
                self._data._undo = outer_undo
                raise
            finally:
                self._depth -= 1
            if self._depth == 0:
                self._data._undo = None
            elif outer_undo is not None:
                self._data._undo = outer_undo

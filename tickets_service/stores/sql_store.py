"""
SQLAlchemy-backed stores for Tickets Service.
"""

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional
import logging

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tickets_service.core.exceptions import StorageError
from tickets_service.db.database import DatabaseManager, db_manager
from tickets_service.models import Event, EventAttendee, Ticket, TicketStatus, UserPreferences
from tickets_service.models.base import generate_id, utc_now
from tickets_service.stores.interfaces import (
    EventStore, PreferencesStore, StorageTransaction, TicketingStorage, TicketStore
)

logger = logging.getLogger(__name__)


class SqlEventStore(EventStore):

    def __init__(self, session: Session):
        self.session = session

    def create_event(self, data: Dict[str, Any]) -> Event:
        values = dict(data)
        values.pop("sold_seats", None)
        values.setdefault("id", generate_id())
        event = Event(sold_seats=0, **values)
        self.session.add(event)
        self.session.flush()
        return event

    def get_event(self, event_id: str) -> Optional[Event]:
        return self.session.query(Event).filter(Event.id == event_id).first()

    def list_events(self) -> List[Event]:
        return self.session.query(Event).order_by(
            Event.iso_date.is_(None),
            Event.iso_date.asc(),
            Event.created_at.asc()
        ).all()

    def list_events_by_creator(self, creator_id: str) -> List[Event]:
        return self.session.query(Event).filter(
            Event.creator_id == creator_id
        ).order_by(Event.created_at.desc()).all()

    def update_capacity(self, event_id: str, max_seats: Optional[int]) -> bool:
        result = self.session.query(Event).filter(Event.id == event_id).update({
            Event.max_seats: max_seats,
            Event.updated_at: utc_now()
        }, synchronize_session=False)
        return result > 0

    def record_sale(self, event_id: str, user_id: str, enforce_capacity: bool = True) -> Optional[int]:
        conditions = [Event.id == event_id]
        if enforce_capacity:
            conditions.append(or_(
                Event.max_seats.is_(None),
                Event.max_seats == 0,
                Event.sold_seats < Event.max_seats
            ))

        # The row stays locked by this update until commit, so the read below sees our increment
        result = self.session.query(Event).filter(and_(*conditions)).update({
            Event.sold_seats: Event.sold_seats + 1,
            Event.updated_at: utc_now()
        }, synchronize_session=False)

        if result == 0:
            return None

        sold_seats = self.session.query(Event.sold_seats).filter(Event.id == event_id).scalar()

        already_attending = self.session.query(EventAttendee.id).filter(
            EventAttendee.event_id == event_id,
            EventAttendee.user_id == user_id
        ).first()
        if not already_attending:
            self.session.add(EventAttendee(event_id=event_id, user_id=user_id, joined_at=utc_now()))
            self.session.flush()

        return sold_seats

    def list_attendees(self, event_id: str) -> List[str]:
        rows = self.session.query(EventAttendee.user_id).filter(
            EventAttendee.event_id == event_id
        ).order_by(EventAttendee.id.asc()).all()
        return [row.user_id for row in rows]


class SqlTicketStore(TicketStore):

    def __init__(self, session: Session):
        self.session = session

    def create_ticket(self, data: Dict[str, Any]) -> Ticket:
        values = dict(data)
        values.setdefault("id", generate_id())
        values["status"] = TicketStatus.ACTIVE
        values["redeemed_at"] = None
        values.setdefault("purchase_date", utc_now())
        values.setdefault("price_paid", Decimal("0.00"))
        ticket = Ticket(**values)
        self.session.add(ticket)
        self.session.flush()
        return ticket

    def update_qr_code(self, ticket_id: str, qr_code_data: str) -> bool:
        result = self.session.query(Ticket).filter(Ticket.id == ticket_id).update(
            {Ticket.qr_code_data: qr_code_data},
            synchronize_session="fetch"
        )
        return result > 0

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        return self.session.query(Ticket).filter(Ticket.id == ticket_id).first()

    def find_ticket_by_legacy_id(self, legacy_id: str) -> Optional[Ticket]:
        return self.session.query(Ticket).filter(Ticket.legacy_id == legacy_id).first()

    def find_ticket_for_user(self, event_id: str, user_id: str) -> Optional[Ticket]:
        return self.session.query(Ticket).filter(
            Ticket.event_id == event_id,
            Ticket.user_id == user_id
        ).order_by(Ticket.purchase_date.asc()).first()

    def list_tickets_for_user(self, user_id: str) -> List[Ticket]:
        return self.session.query(Ticket).filter(
            Ticket.user_id == user_id
        ).order_by(Ticket.purchase_date.desc()).all()

    def list_tickets_for_event(self, event_id: str) -> List[Ticket]:
        return self.session.query(Ticket).filter(
            Ticket.event_id == event_id
        ).order_by(Ticket.seat_number.asc()).all()

    def set_status_used(self, ticket_id: str, redeemed_at: datetime) -> bool:
        result = self.session.query(Ticket).filter(and_(
            Ticket.id == ticket_id,
            Ticket.status == TicketStatus.ACTIVE
        )).update({
            Ticket.status: TicketStatus.USED,
            Ticket.redeemed_at: redeemed_at
        }, synchronize_session=False)
        return result > 0


class SqlPreferencesStore(PreferencesStore):

    FIELDS = ("saved_events", "reminders", "history")

    def __init__(self, session: Session):
        self.session = session

    def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        return self.session.query(UserPreferences).filter(UserPreferences.user_id == user_id).first()

    def save_preferences(self, user_id: str, data: Dict[str, Any]) -> UserPreferences:
        preferences = self.get_preferences(user_id)
        if preferences is None:
            preferences = UserPreferences(user_id=user_id, saved_events=[], reminders=[], history=[])
            self.session.add(preferences)

        for field in self.FIELDS:
            if field in data and data[field] is not None:
                setattr(preferences, field, list(data[field]))
        preferences.updated_at = utc_now()

        self.session.flush()
        return preferences


class SqlTicketingStorage(TicketingStorage):
    """Ticketing storage on a relational database via the shared DatabaseManager."""

    name = "database"

    def __init__(self, manager: Optional[DatabaseManager] = None, database_url: Optional[str] = None):
        self.manager = manager or db_manager
        self.database_url = database_url

    async def initialize(self):
        await self.manager.initialize(self.database_url)
        self.manager.create_tables()

    async def close(self):
        await self.manager.close()

    def health_check(self) -> bool:
        return self.manager.health_check()

    @contextmanager
    def transaction(self) -> Generator[StorageTransaction, None, None]:
        try:
            with self.manager.get_session() as session:
                yield StorageTransaction(
                    events=SqlEventStore(session),
                    tickets=SqlTicketStore(session),
                    preferences=SqlPreferencesStore(session)
                )
        except SQLAlchemyError as e:
            raise StorageError("Storage operation failed", {"reason": str(e)}) from e

"""
User preference model: saved events, reminders and browsing history.
"""

from sqlalchemy import JSON, Column, DateTime, String

from tickets_service.models.base import Base, utc_now


class UserPreferences(Base):

    __tablename__ = "user_preferences"

    user_id = Column(String(128), primary_key=True)
    saved_events = Column(JSON, nullable=False, default=list)
    reminders = Column(JSON, nullable=False, default=list)
    history = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f"<UserPreferences(user_id='{self.user_id}')>"

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "saved_events": list(self.saved_events or []),
            "reminders": list(self.reminders or []),
            "history": list(self.history or []),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

"""
Declarative base shared by all Tickets Service models.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_id() -> str:
    """Store-assigned opaque identifier."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

"""
Storage selection for Tickets Service.
The active storage is chosen once at startup from STORAGE_BACKEND.
"""

from typing import Optional
import logging

from tickets_service.core.config import config
from tickets_service.stores.interfaces import (
    EventStore, PreferencesStore, StorageTransaction, TicketingStorage, TicketStore
)
from tickets_service.stores.memory_store import MemoryTicketingStorage
from tickets_service.stores.sql_store import SqlTicketingStorage

logger = logging.getLogger(__name__)

_storage: Optional[TicketingStorage] = None


async def create_storage(backend: Optional[str] = None) -> TicketingStorage:
    """Build an uninitialized storage for the given or configured backend."""
    backend = backend or await config.get_storage_backend()
    if backend == "memory":
        return MemoryTicketingStorage()
    if backend == "database":
        return SqlTicketingStorage()
    raise ValueError(f"Unsupported storage backend: {backend}")


async def initialize_storage(backend: Optional[str] = None) -> TicketingStorage:
    """Create, initialize and register the process-wide storage."""
    global _storage
    storage = await create_storage(backend)
    await storage.initialize()
    _storage = storage
    logger.info(f"Ticketing storage initialized: {storage.name}")
    return storage


def get_storage() -> TicketingStorage:
    if _storage is None:
        raise RuntimeError("Ticketing storage not initialized")
    return _storage


async def close_storage():
    global _storage
    if _storage is not None:
        await _storage.close()
        _storage = None


__all__ = [
    "EventStore",
    "PreferencesStore",
    "StorageTransaction",
    "TicketStore",
    "TicketingStorage",
    "MemoryTicketingStorage",
    "SqlTicketingStorage",
    "create_storage",
    "initialize_storage",
    "get_storage",
    "close_storage",
]

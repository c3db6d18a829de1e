"""
Test configuration and fixtures for Tickets Service.
Stores run against both the in-memory backend and SQLite.
"""

import os

os.environ["STORAGE_BACKEND"] = "memory"
os.environ["JWT_SECRET"] = "test-secret-key-for-tickets-service-01"
os.environ["ENABLE_DISTRIBUTED_LOCKS"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ.pop("QR_SIGNING_SECRET", None)
os.environ.pop("ZERO_TOKEN", None)

import pytest
import pytest_asyncio
import jwt
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from tickets_service.db.database import DatabaseManager
from tickets_service.db.redis_client import LockProvider
from tickets_service.services.capacity_service import CapacityService, capacity_service
from tickets_service.services.checkin_service import CheckInService, checkin_service
from tickets_service.services.event_service import EventService
from tickets_service.services.issuance_service import TicketIssuanceService
from tickets_service.services.preferences_service import PreferencesService
from tickets_service.services.qr_codec import QRCodec
from tickets_service.stores.memory_store import MemoryTicketingStorage
from tickets_service.stores.sql_store import SqlTicketingStorage

TEST_SECRET = "test-secret-key-for-tickets-service-01"


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def storage(request):
    """Ticketing storage, once per backend."""
    if request.param == "memory":
        backend = MemoryTicketingStorage()
    else:
        backend = SqlTicketingStorage(manager=DatabaseManager(), database_url="sqlite://")

    await backend.initialize()
    yield backend
    await backend.close()


@pytest.fixture
def memory_storage():
    return MemoryTicketingStorage()


@pytest.fixture
def ticketing_config():
    """Ticket issuance rules for testing."""
    return {
        "enable_capacity_checks": True,
        "enable_duplicate_prevention": True,
    }


@pytest.fixture
def consistency_config():
    """Local locking configuration for testing."""
    return {
        "lock_timeout_seconds": 5,
        "lock_blocking_timeout_seconds": 5,
        "enable_distributed_locks": False,
    }


@pytest.fixture
def qr_codec():
    return QRCodec(TEST_SECRET, algorithm="HS256", issuer="tickets_service")


@pytest.fixture
def capacity(storage, ticketing_config, consistency_config):
    """Capacity service bound to the test storage."""
    service = CapacityService(storage)
    service.ticketing_config = ticketing_config
    service.consistency_config = consistency_config
    service.cache_config = {"enabled": False, "event_ttl": 30}
    service.locks = LockProvider(distributed=False, timeout=5, blocking_timeout=5)
    return service


@pytest.fixture
def issuance(storage, capacity, ticketing_config, qr_codec):
    """Ticket issuance service bound to the test storage."""
    service = TicketIssuanceService(storage, capacity)
    service.ticketing_config = ticketing_config
    service.codec = qr_codec
    return service


@pytest.fixture
def checkin(storage, consistency_config, qr_codec):
    """Check-in service bound to the test storage."""
    service = CheckInService(storage)
    service.consistency_config = consistency_config
    service.codec = qr_codec
    service.locks = LockProvider(distributed=False, timeout=5, blocking_timeout=5)
    return service


@pytest.fixture
def events(storage):
    service = EventService(storage)
    service.cache_config = {"enabled": False, "event_ttl": 30}
    return service


@pytest.fixture
def preferences(storage):
    return PreferencesService(storage)


@pytest.fixture
def sample_event_data():
    """Sample event data for testing."""
    return {
        "title": "Rooftop Jazz Night",
        "description": "Live quartet under the stars",
        "location": "Skyline Terrace, Lisbon",
        "category": "music",
        "date": "Sat, Nov 2 at 7pm",
        "iso_date": datetime(2030, 11, 2, 19, 0, tzinfo=timezone.utc),
        "price_value": Decimal("25.00"),
        "max_seats": 2,
        "creator_id": "host-1",
        "is_user_created": True,
    }


@pytest.fixture
def make_event(storage, sample_event_data):
    """Factory that stores an event and returns it."""
    def _make_event(**overrides):
        data = dict(sample_event_data)
        data.update(overrides)
        with storage.transaction() as tx:
            return tx.events.create_event(data)
    return _make_event


@pytest.fixture
def alice():
    return {"user_id": "user-alice", "name": "Alice", "role": "user"}


@pytest.fixture
def bob():
    return {"user_id": "user-bob", "name": "Bob", "role": "user"}


@pytest.fixture
def carol():
    return {"user_id": "user-carol", "name": "Carol", "role": "user"}


@pytest.fixture
def mock_redis_manager():
    """Mock Redis manager for testing."""
    mock_redis = AsyncMock()
    mock_redis.initialize = AsyncMock()
    mock_redis.get_json = AsyncMock(return_value=None)
    mock_redis.set_json = AsyncMock(return_value=True)
    mock_redis.delete = AsyncMock(return_value=True)
    return mock_redis


def make_token(user_id: str, name: str = "", role: str = "user", secret: str = TEST_SECRET) -> str:
    """Signed bearer token for API tests."""
    payload = {"user_id": user_id, "name": name, "email": f"{user_id}@example.com", "role": role}
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id: str, name: str = "", role: str = "user") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, name, role)}"}


@pytest.fixture
def client():
    """Test client running the app on a fresh in-memory storage."""
    from tickets_service.main import app

    # Local locks belong to the event loop that created them
    capacity_service.locks = None
    checkin_service.locks = None

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def host_headers():
    return auth_headers("host-1", "Hana Host")


@pytest.fixture
def admin_headers():
    return auth_headers("admin-1", "Ada Admin", role="admin")


@pytest.fixture
def alice_headers():
    return auth_headers("user-alice", "Alice")


@pytest.fixture
def bob_headers():
    return auth_headers("user-bob", "Bob")


@pytest.fixture
def headers_for():
    """Build bearer headers for an arbitrary user."""
    return auth_headers


@pytest.fixture
def api_event_payload():
    """Event creation body for API tests."""
    return {
        "title": "Rooftop Jazz Night",
        "description": "Live quartet under the stars",
        "location": "Skyline Terrace, Lisbon",
        "category": "Music",
        "date": "Sat, Nov 2 at 7pm",
        "iso_date": "2030-11-02T19:00:00Z",
        "price_value": "25.00",
        "max_seats": 2,
    }


@pytest.fixture
def create_event(client, api_event_payload):
    """Create an event through the API and return its JSON body."""
    def _create_event(headers, **overrides):
        payload = dict(api_event_payload)
        payload.update(overrides)
        response = client.post("/api/v1/events/", json=payload, headers=headers)
        assert response.status_code == 201
        return response.json()
    return _create_event

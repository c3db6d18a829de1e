"""
Redis access for Tickets Service.
Event snapshots are cached as JSON; sales and check-ins can be serialized
across instances with SET NX EX locks.
"""

import asyncio
import json
import time
import uuid
from typing import Any, Dict, Optional
import logging

import redis.asyncio as redis

from tickets_service.core.config import config

logger = logging.getLogger(__name__)

LOCK_POLL_INTERVAL = 0.05

# Deletes the key only while it still holds the caller's token
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class LockTimeoutError(Exception):
    """Raised when a lock could not be taken within its blocking timeout."""

    def __init__(self, lock_key: str):
        super().__init__(f"Lock unavailable: {lock_key}")
        self.lock_key = lock_key


class RedisManager:
    """
    Shared Redis connection.
    Cache reads and writes degrade to misses on Redis errors; lock
    acquisition reports failure to the caller instead.
    """

    def __init__(self):
        self.redis_client: Optional[redis.Redis] = None
        self._initialized = False

    async def initialize(self):
        if self._initialized:
            return

        try:
            self.redis_client = redis.from_url(
                await config.get_redis_url(),
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )
            await self.redis_client.ping()
            self._initialized = True
            logger.info("Connected to Redis")

        except Exception as e:
            logger.error(f"Could not connect to Redis: {e}")
            raise

    async def close(self):
        if self.redis_client:
            await self.redis_client.aclose()
        self._initialized = False
        logger.info("Redis connection closed")

    async def _client(self) -> redis.Redis:
        if not self._initialized:
            await self.initialize()
        return self.redis_client

    # Snapshot cache
    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """Cached JSON document, or None on a miss or an unreadable entry."""
        try:
            raw = await (await self._client()).get(key)
        except Exception as e:
            logger.error(f"Cache read failed for {key}: {e}")
            return None

        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            return None

    async def set_json(self, key: str, value: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        """Cache a JSON document, expiring after ttl seconds when given."""
        try:
            client = await self._client()
            return bool(await client.set(key, json.dumps(value, default=str), ex=ttl or None))
        except Exception as e:
            logger.error(f"Cache write failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            return await (await self._client()).delete(key) > 0
        except Exception as e:
            logger.error(f"Cache delete failed for {key}: {e}")
            return False

    # Locks
    async def acquire_lock(self, lock_key: str, lock_value: str, timeout: int = 30, blocking_timeout: int = 10) -> bool:
        """
        Take a lock by setting lock_key to the owner token if it is unset.

        Args:
            lock_key: Lock name
            lock_value: Owner token, checked again on release
            timeout: Seconds before Redis expires an abandoned lock
            blocking_timeout: Seconds to keep retrying while the lock is held

        Returns:
            Whether the lock was taken
        """
        client = await self._client()
        deadline = time.monotonic() + blocking_timeout

        while time.monotonic() < deadline:
            try:
                if await client.set(lock_key, lock_value, nx=True, ex=timeout):
                    logger.debug(f"Locked {lock_key}")
                    return True
            except Exception as e:
                logger.error(f"Lock request for {lock_key} failed: {e}")
                return False
            await asyncio.sleep(LOCK_POLL_INTERVAL)

        logger.warning(f"Gave up waiting for {lock_key} after {blocking_timeout}s")
        return False

    async def release_lock(self, lock_key: str, lock_value: str) -> bool:
        """
        Release a lock held by lock_value.
        A lock that expired and was taken by another owner is left alone.
        """
        client = await self._client()

        try:
            if not await client.eval(RELEASE_LOCK_SCRIPT, 1, lock_key, lock_value):
                logger.warning(f"Lock {lock_key} no longer owned; skipping release")
                return False
            logger.debug(f"Unlocked {lock_key}")
            return True
        except Exception as e:
            logger.error(f"Unlock of {lock_key} failed: {e}")
            return False

    async def health_check(self) -> bool:
        try:
            return await (await self._client()).ping() is True
        except Exception as e:
            logger.error(f"Redis ping failed: {e}")
            return False


# Global Redis manager instance
redis_manager = RedisManager()


class DistributedLock:
    """Redis lock held for the duration of an async with block."""

    def __init__(self, manager: RedisManager, lock_key: str, timeout: int = 30, blocking_timeout: int = 10):
        self.manager = manager
        self.lock_key = lock_key
        self.lock_value = uuid.uuid4().hex
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.acquired = False

    async def __aenter__(self):
        self.acquired = await self.manager.acquire_lock(
            self.lock_key, self.lock_value, self.timeout, self.blocking_timeout
        )
        if not self.acquired:
            raise LockTimeoutError(self.lock_key)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self.acquired:
            await self.manager.release_lock(self.lock_key, self.lock_value)
            self.acquired = False


class LocalLock:
    """In-process stand-in for DistributedLock."""

    def __init__(self, provider: "LockProvider", lock_key: str, blocking_timeout: float = 10):
        self.provider = provider
        self.lock_key = lock_key
        self.wait_seconds = blocking_timeout
        self.lock: Optional[asyncio.Lock] = None

    async def __aenter__(self):
        self.lock = self.provider._checkout(self.lock_key)
        try:
            await asyncio.wait_for(self.lock.acquire(), timeout=self.wait_seconds)
        except asyncio.TimeoutError:
            self.provider._checkin(self.lock_key)
            raise LockTimeoutError(self.lock_key)
        except BaseException:
            self.provider._checkin(self.lock_key)
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.lock.release()
        self.provider._checkin(self.lock_key)


class LockProvider:
    """
    Hands out per-key locks, backed by Redis or by in-process asyncio locks.
    Local locks are kept only while some coroutine holds or waits for them.
    """

    def __init__(self, manager: Optional[RedisManager] = None, distributed: bool = False,
                 timeout: int = 30, blocking_timeout: float = 10):
        self.manager = manager or redis_manager
        self.distributed = distributed
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self._local_locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def lock(self, lock_key: str):
        if self.distributed:
            return DistributedLock(self.manager, lock_key, self.timeout, self.blocking_timeout)
        return LocalLock(self, lock_key, self.blocking_timeout)

    def _checkout(self, lock_key: str) -> asyncio.Lock:
        self._users[lock_key] = self._users.get(lock_key, 0) + 1
        return self._local_locks.setdefault(lock_key, asyncio.Lock())

    def _checkin(self, lock_key: str):
        remaining = self._users.get(lock_key, 0) - 1
        if remaining > 0:
            self._users[lock_key] = remaining
        else:
            self._users.pop(lock_key, None)
            self._local_locks.pop(lock_key, None)

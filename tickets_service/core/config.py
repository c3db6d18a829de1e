"""
Configuration management for Tickets Service.
Reads secrets from Zero when a ZERO_TOKEN is present, otherwise from the environment.
"""

import os
import asyncio
import concurrent.futures
from urllib.parse import quote_plus
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


class ZeroSecretsManager:
    """
    Zero secrets client using the official Zero Python SDK.
    Secrets are fetched once and cached for the lifetime of the process.
    """

    def __init__(self, zero_token: str, caller_name: str = "eventhorizon"):
        self.zero_token = zero_token
        self.caller_name = caller_name
        self._cache: Dict[str, Any] = {}
        self._secrets = None

    async def _fetch_secrets(self):
        """Fetch secrets from Zero if not already cached."""
        if self._secrets is None:
            from zero_python_sdk import zero

            try:
                loop = asyncio.get_running_loop()
                with concurrent.futures.ThreadPoolExecutor() as executor:
                    self._secrets = await loop.run_in_executor(
                        executor,
                        lambda: zero(
                            token=self.zero_token,
                            pick=["eventhorizon"],
                            caller_name=self.caller_name
                        ).fetch()
                    )
                logger.info("Successfully fetched secrets from Zero")
            except Exception as e:
                logger.error(f"Failed to fetch secrets from Zero: {e}")
                self._secrets = {}

    def _normalize_key(self, key: str) -> str:
        """Normalize a key to lowercase and replace underscores with hyphens."""
        return key.lower().replace("_", "-")

    async def get_secret(self, key: str) -> Optional[str]:
        """
        Get a secret value by key.

        Args:
            key: The secret key to retrieve

        Returns:
            Secret value or None if not found
        """
        key = self._normalize_key(key)
        if key in self._cache:
            return self._cache[key]

        await self._fetch_secrets()
        secret_value = self._secrets.get("eventhorizon", {}).get(key)

        if secret_value:
            self._cache[key] = secret_value

        return secret_value

    async def close(self):
        """Close method for compatibility."""
        self._cache.clear()


class TicketsConfig:
    """
    Tickets Service configuration manager.
    Every value falls back to the process environment and then to a default,
    so the service can run without a secrets backend.
    """

    def __init__(self, zero_token: Optional[str] = None):
        self.zero_token = zero_token or os.getenv("ZERO_TOKEN")
        self.secrets_manager = ZeroSecretsManager(self.zero_token) if self.zero_token else None

    async def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Resolve a configuration key from Zero, then the environment."""
        if self.secrets_manager:
            value = await self.secrets_manager.get_secret(key)
            if value:
                return value
        return os.getenv(key, default)

    async def _get_flag(self, key: str, default: bool) -> bool:
        value = await self.get_value(key)
        if value is None:
            return default
        return value.strip().lower() == "true"

    async def get_storage_backend(self) -> str:
        """Get the storage backend: 'database' or 'memory'."""
        backend = (await self.get_value("STORAGE_BACKEND", "database")).lower()
        if backend not in ("database", "memory"):
            raise ValueError(f"Unsupported storage backend: {backend}")
        return backend

    async def get_database_url(self) -> str:
        """Get the database connection URL."""
        url = await self.get_value("DATABASE_URL")
        if url:
            return url

        host = await self.get_value("DB_HOST", "localhost")
        port = await self.get_value("DB_PORT", "5432")
        name = await self.get_value("DB_NAME", "eventhorizon")
        user = await self.get_value("DB_USER", "eventhorizon")
        password = await self.get_value("DB_PASSWORD", "eventhorizon123")

        return f"postgresql+psycopg://{user}:{quote_plus(password)}@{host}:{port}/{name}"

    async def get_redis_url(self) -> str:
        """Get the Redis connection URL."""
        url = await self.get_value("REDIS_URL")
        if url:
            return url

        host = await self.get_value("REDIS_HOST", "localhost")
        port = await self.get_value("REDIS_PORT", "6379")
        password = await self.get_value("REDIS_PASSWORD")
        use_tls = await self._get_flag("REDIS_USE_TLS", False)

        protocol = "rediss://" if use_tls else "redis://"

        if password:
            return f"{protocol}:{quote_plus(password)}@{host}:{port}"
        return f"{protocol}{host}:{port}"

    async def get_jwt_secret(self) -> str:
        """Get JWT secret key."""
        return await self.get_value("JWT_SECRET", "your-secret-key-change-in-production")

    async def get_jwt_algorithm(self) -> str:
        """Get JWT algorithm."""
        return await self.get_value("JWT_ALGORITHM", "HS256")

    async def get_cache_config(self) -> Dict[str, Any]:
        """Get cache configuration for event snapshots."""
        return {
            "enabled": await self._get_flag("CACHE_ENABLED", False),
            "event_ttl": int(await self.get_value("CACHE_TTL_EVENT", "30")),
        }

    async def get_consistency_config(self) -> Dict[str, Any]:
        """Get locking configuration for issuance and check-in."""
        return {
            "lock_timeout_seconds": int(await self.get_value("LOCK_TIMEOUT_SECONDS", "30")),
            "lock_blocking_timeout_seconds": int(await self.get_value("LOCK_BLOCKING_TIMEOUT_SECONDS", "10")),
            "enable_distributed_locks": await self._get_flag("ENABLE_DISTRIBUTED_LOCKS", False),
        }

    async def get_ticketing_config(self) -> Dict[str, Any]:
        """Get ticket issuance rules."""
        return {
            "enable_capacity_checks": await self._get_flag("ENABLE_CAPACITY_CHECKS", True),
            "enable_duplicate_prevention": await self._get_flag("ENABLE_DUPLICATE_PREVENTION", True),
        }

    async def get_qr_config(self) -> Dict[str, Any]:
        """Get QR payload signing configuration."""
        return {
            "signing_secret": await self.get_value("QR_SIGNING_SECRET") or await self.get_jwt_secret(),
            "algorithm": await self.get_value("QR_SIGNING_ALGORITHM", "HS256"),
            "issuer": await self.get_value("QR_ISSUER", "tickets_service"),
        }

    async def get_database_config(self) -> Dict[str, Any]:
        """Get database pool configuration."""
        return {
            "pool_size": int(await self.get_value("DB_POOL_SIZE", "10")),
            "max_overflow": int(await self.get_value("DB_MAX_OVERFLOW", "20")),
            "pool_timeout": int(await self.get_value("DB_POOL_TIMEOUT", "30")),
            "pool_recycle": int(await self.get_value("DB_POOL_RECYCLE", "3600")),
        }

    async def close(self):
        """Close the secrets manager."""
        if self.secrets_manager:
            await self.secrets_manager.close()


# Global config instance
config = TicketsConfig()

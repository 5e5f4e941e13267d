"""Persistent key-value store backed by Redis."""

import json
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from weatherdesk.core.config import settings
from weatherdesk.core.logging import get_logger

logger = get_logger(__name__)


class StorageUnavailableError(Exception):
    """Key-value store is not connected or a command failed."""

    pass


class KeyValueStore:
    """String key-value store shared by accounts, sessions and history."""

    def __init__(self):
        """Initialize key-value store."""
        self.redis: Redis | None = None

    async def connect(self) -> None:
        """Connect to Redis."""
        try:
            self.redis = Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                db=settings.redis_db,
                password=settings.redis_password,
                decode_responses=True,
            )
            await self.redis.ping()
            logger.info("redis_connected", host=settings.redis_host, port=settings.redis_port)
        except RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("redis_disconnected")

    def _client(self, operation: str, key: str) -> Redis:
        if not self.redis:
            logger.warning("storage_unavailable", operation=operation, key=key)
            raise StorageUnavailableError("Storage is not available")
        return self.redis

    async def get(self, key: str) -> str | None:
        """Get the string stored under ``key``.

        Args:
            key: Storage key

        Returns:
            Stored string or None if the key is absent

        Raises:
            StorageUnavailableError: If Redis is unreachable
        """
        redis = self._client("get", key)
        try:
            return await redis.get(key)
        except RedisError as e:
            logger.error("storage_get_error", key=key, error=str(e))
            raise StorageUnavailableError(f"Storage read failed: {e}") from e

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key`` with no expiry.

        Raises:
            StorageUnavailableError: If Redis is unreachable
        """
        redis = self._client("set", key)
        try:
            await redis.set(key, value)
        except RedisError as e:
            logger.error("storage_set_error", key=key, error=str(e))
            raise StorageUnavailableError(f"Storage write failed: {e}") from e

    async def remove(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""
        redis = self._client("remove", key)
        try:
            await redis.delete(key)
        except RedisError as e:
            logger.error("storage_remove_error", key=key, error=str(e))
            raise StorageUnavailableError(f"Storage delete failed: {e}") from e

    async def get_json(self, key: str) -> Any | None:
        """Get and decode a JSON value; undecodable data reads as absent."""
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("storage_decode_error", key=key, error=str(e))
            return None

    async def set_json(self, key: str, value: Any) -> None:
        """Encode ``value`` as JSON and store it."""
        await self.set(key, json.dumps(value))

    async def is_connected(self) -> bool:
        """Check if Redis is connected.

        Returns:
            True if connected, False otherwise
        """
        if not self.redis:
            return False

        try:
            await self.redis.ping()
            return True
        except RedisError:
            return False


# Global storage instance
storage = KeyValueStore()

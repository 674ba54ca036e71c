"""
Key-value stores for locally persisted client state.

Every entry is one flat JSON document per key. Read and write failures are
logged and treated as a missing value, so a broken store degrades the client
to "nothing cached" rather than failing requests.
"""
import json
import logging
from typing import Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


def _decode(key: str, raw: str | bytes | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("store_value_unreadable", extra={"key": key})
        return None


class KeyValueStore:
    """Interface for JSON-per-key storage."""

    async def get(self, key: str) -> Any:
        """Return the decoded value, or None when missing or unreadable."""
        raise NotImplementedError

    async def set(self, key: str, value: Any) -> bool:
        """Store a JSON-serializable value; returns False if it was not persisted."""
        raise NotImplementedError

    async def delete(self, *keys: str) -> bool:
        """Remove key(s); returns False if the store was unavailable."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release any held connections."""


class MemoryStore(KeyValueStore):
    """Process-local store. Values are kept serialized to mirror persistent backends."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Any:
        return _decode(key, self._data.get(key))

    async def set(self, key: str, value: Any) -> bool:
        self._data[key] = json.dumps(value)
        return True

    async def delete(self, *keys: str) -> bool:
        for key in keys:
            self._data.pop(key, None)
        return True

    def raw(self, key: str) -> str | None:
        """Serialized value as stored (for inspection)."""
        return self._data.get(key)


class RedisStore(KeyValueStore):
    """Redis-backed store with connection pooling and graceful fallback."""

    def __init__(self, url: str, prefix: str = "", enabled: bool = True) -> None:
        self._url = url
        self._prefix = prefix
        self._enabled = enabled
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Initialize the connection pool and verify connectivity."""
        if not self._enabled:
            logger.info("Redis store disabled by configuration")
            return
        try:
            self._pool = ConnectionPool.from_url(self._url, max_connections=10)
            self._client = Redis(connection_pool=self._pool)
            await self._client.ping()
            logger.info("Redis store connected")
        except RedisError as e:
            logger.warning("Redis store connection failed: %s", e)
            self._client = None
            self._pool = None

    async def close(self) -> None:
        """Close connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
            self._pool = None
            logger.info("Redis store connection closed")

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._client is not None

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Any:
        if not self._client:
            return None
        try:
            raw = await self._client.get(self._key(key))
        except RedisError as e:
            logger.warning("Redis GET failed: %s", e)
            return None
        return _decode(key, raw)

    async def set(self, key: str, value: Any) -> bool:
        if not self._client:
            return False
        try:
            await self._client.set(self._key(key), json.dumps(value))
            return True
        except RedisError as e:
            logger.warning("Redis SET failed: %s", e)
            return False

    async def delete(self, *keys: str) -> bool:
        if not self._client:
            return False
        try:
            await self._client.delete(*(self._key(key) for key in keys))
            return True
        except RedisError as e:
            logger.warning("Redis DELETE failed: %s", e)
            return False

"""
Tests for the key-value stores.

RedisStore is exercised against a mocked redis.asyncio client: the wrapper's
job is JSON encoding, key prefixing and graceful fallback, not Redis itself.
"""
from unittest.mock import AsyncMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from core.store import MemoryStore, RedisStore


class TestMemoryStore:
    """Tests for MemoryStore."""

    async def test__set_get__json_round_trip(self) -> None:
        store = MemoryStore()

        await store.set("appSettings", {"language": "hi"})

        assert await store.get("appSettings") == {"language": "hi"}
        assert store.raw("appSettings") == '{"language": "hi"}'

    async def test__get__missing_is_none(self) -> None:
        assert await MemoryStore().get("missing") is None

    async def test__delete__multiple_keys(self) -> None:
        store = MemoryStore()
        await store.set("a", 1)
        await store.set("b", 2)

        await store.delete("a", "b", "never-set")

        assert await store.get("a") is None
        assert await store.get("b") is None


class TestRedisStore:
    """Tests for RedisStore."""

    async def _connected_store(self, redis_mock: AsyncMock) -> RedisStore:
        store = RedisStore("redis://localhost:6379", prefix="finance:")
        with patch("core.store.ConnectionPool"), patch("core.store.Redis", return_value=redis_mock):
            await store.connect()
        return store

    async def test__connect__disabled_store_stays_disconnected(self) -> None:
        store = RedisStore("redis://localhost:6379", enabled=False)

        await store.connect()

        assert store.is_connected is False
        assert await store.get("auth_session") is None
        assert await store.set("auth_session", "1") is False

    async def test__connect__failure_degrades_gracefully(self) -> None:
        redis_mock = AsyncMock()
        redis_mock.ping.side_effect = RedisConnectionError("refused")

        store = await self._connected_store(redis_mock)

        assert store.is_connected is False

    async def test__set__prefixes_key_and_encodes_json(self) -> None:
        redis_mock = AsyncMock()
        store = await self._connected_store(redis_mock)

        assert await store.set("appSettings", {"dateFormat": "YYYY-MM-DD"}) is True

        redis_mock.set.assert_awaited_once_with(
            "finance:appSettings", '{"dateFormat": "YYYY-MM-DD"}',
        )

    async def test__get__decodes_bytes(self) -> None:
        redis_mock = AsyncMock()
        redis_mock.get.return_value = b'"1"'
        store = await self._connected_store(redis_mock)

        assert await store.get("auth_session") == "1"
        redis_mock.get.assert_awaited_once_with("finance:auth_session")

    async def test__get__unreadable_value_is_none(self) -> None:
        redis_mock = AsyncMock()
        redis_mock.get.return_value = b"not json"
        store = await self._connected_store(redis_mock)

        assert await store.get("appSettings") is None

    async def test__operations__redis_errors_are_treated_as_misses(self) -> None:
        redis_mock = AsyncMock()
        redis_mock.get.side_effect = RedisError("gone")
        redis_mock.set.side_effect = RedisError("gone")
        redis_mock.delete.side_effect = RedisError("gone")
        store = await self._connected_store(redis_mock)

        assert await store.get("appSettings") is None
        assert await store.set("appSettings", {}) is False
        assert await store.delete("appSettings") is False

    async def test__close__releases_client(self) -> None:
        redis_mock = AsyncMock()
        store = await self._connected_store(redis_mock)

        await store.close()

        redis_mock.aclose.assert_awaited_once()
        assert store.is_connected is False

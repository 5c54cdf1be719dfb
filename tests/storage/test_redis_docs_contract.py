"""Contract-based tests for Redis document storage."""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock, patch
from tests.storage.base import BaseDocumentStorageTestSuite, DocumentStorageContract
from invoify._storage.docs_redis import RedisDocumentStorage
from redis.exceptions import RedisError


def _key(key):
    return key.decode() if isinstance(key, bytes) else key


def build_mock_client(mock_data: dict) -> AsyncMock:
    """In-memory stand-in for the handful of Redis commands the storage uses."""
    mock_client = AsyncMock()
    mock_client.ping = AsyncMock(return_value=True)

    async def mock_get(key):
        return mock_data.get(_key(key))
    mock_client.get = AsyncMock(side_effect=mock_get)

    async def mock_set(key, value, nx=False):
        key = _key(key)
        if nx and key in mock_data:
            return None
        mock_data[key] = value
        return True
    mock_client.set = AsyncMock(side_effect=mock_set)

    async def mock_delete(*keys):
        return sum(1 for k in keys if mock_data.pop(_key(k), None) is not None)
    mock_client.delete = AsyncMock(side_effect=mock_delete)

    async def mock_scan(cursor, match=None, count=None):
        prefix = match.rstrip('*') if match else ''
        return (0, [k.encode() for k in list(mock_data) if k.startswith(prefix)])
    mock_client.scan = AsyncMock(side_effect=mock_scan)

    async def mock_scan_iter(match=None, count=None):
        prefix = match.rstrip('*') if match else ''
        for k in list(mock_data):
            if k.startswith(prefix):
                yield k.encode()
    mock_client.scan_iter = mock_scan_iter

    class MockPipeline:
        def __init__(self):
            self.commands = []

        async def __aenter__(self):
            return self

        async def __aexit__(self, *args):
            return None

        def get(self, key):
            self.commands.append(_key(key))
            return self

        async def execute(self):
            return [mock_data.get(k) for k in self.commands]

    mock_client.pipeline = MagicMock(side_effect=lambda: MockPipeline())
    mock_client.bgsave = AsyncMock(return_value=True)
    mock_client.close = AsyncMock()

    return mock_client


class TestRedisDocumentContract(BaseDocumentStorageTestSuite):
    """Redis document storage contract tests with mocks."""

    @pytest.fixture
    def mock_data(self):
        return {}

    @pytest_asyncio.fixture
    async def storage(self, mock_data):
        """Provide mocked Redis document storage instance."""
        config = {
            "redis_url": "redis://localhost:6379",
            "redis_prefix": "invoify-test",
            "redis_max_connections": 10,
            "redis_connection_timeout": 5.0,
            "redis_socket_timeout": 5.0,
            "redis_health_check_interval": 30
        }

        mock_client = build_mock_client(mock_data)
        mock_pool = MagicMock()
        mock_pool.disconnect = AsyncMock()

        with patch('invoify._storage.docs_redis.aioredis') as mock_aioredis:
            mock_aioredis.ConnectionPool.from_url.return_value = mock_pool
            mock_aioredis.Redis.return_value = mock_client

            storage = RedisDocumentStorage(
                namespace="test",
                global_config=config
            )
            await storage._ensure_initialized()

            yield storage

    @pytest.fixture
    def contract(self):
        """Define Redis document capabilities."""
        return DocumentStorageContract(
            supports_persistence=True,
            supports_dotted_filters=True,
        )

    @pytest.mark.asyncio
    async def test_keys_are_namespaced(self, storage, mock_data):
        await storage.insert_one({"_id": "abc", "userId": "u1"})
        assert "invoify-test:test:abc" in mock_data

    @pytest.mark.asyncio
    async def test_drop_leaves_other_namespaces(self, storage, mock_data):
        mock_data["invoify-test:other:x"] = b'{"_id": "x"}'
        await storage.insert_one({"_id": "mine"})

        await storage.drop()

        assert list(mock_data) == ["invoify-test:other:x"]

    @pytest.mark.asyncio
    async def test_undecodable_record_is_skipped(self, storage, mock_data):
        mock_data["invoify-test:test:bad"] = b"\xff not json"
        await storage.insert_one({"_id": "good"})

        records = await storage.find()
        assert [r["_id"] for r in records] == ["good"]

    @pytest.mark.asyncio
    async def test_health_false_on_redis_error(self, storage):
        storage._redis_client.ping = AsyncMock(side_effect=RedisError("down"))
        assert await storage.check_health() is False

    @pytest.mark.asyncio
    async def test_bgsave_failure_is_not_fatal(self, storage):
        storage._redis_client.bgsave = AsyncMock(side_effect=RedisError("busy"))
        await storage.index_done_callback()

"""Redis-based document storage backend for production deployments."""

import json
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
import asyncio

import redis.asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError

from ..base import BaseDocumentStorage
from .._utils import logger, matches_filter, new_object_id


@dataclass
class RedisDocumentStorage(BaseDocumentStorage):
    """Redis-backed collection: one key per record under ``<prefix>:<namespace>:<_id>``."""

    _redis_client: Optional[Any] = field(init=False, default=None)
    _connection_pool: Optional[Any] = field(init=False, default=None)
    _initialized: bool = field(init=False, default=False)

    def __post_init__(self):
        """Read Redis settings; the connection is opened lazily in async context."""
        prefix = self.global_config.get("redis_prefix", "invoify")
        self._prefix = f"{prefix}:{self.namespace}:"

        self.redis_url = self.global_config.get("redis_url", "redis://localhost:6379")
        self.redis_password = self.global_config.get("redis_password", None)
        self.max_connections = self.global_config.get("redis_max_connections", 50)
        self.socket_timeout = self.global_config.get("redis_socket_timeout", 5.0)
        self.connection_timeout = self.global_config.get("redis_connection_timeout", 5.0)
        self.health_check_interval = self.global_config.get("redis_health_check_interval", 30)

    async def _ensure_initialized(self):
        """Ensure Redis connection is initialized."""
        if self._initialized:
            return

        retry = Retry(
            ExponentialBackoff(cap=10, base=1),
            retries=3,
            supported_errors=(RedisConnectionError, TimeoutError, ConnectionError)
        )

        self._connection_pool = aioredis.ConnectionPool.from_url(
            self.redis_url,
            password=self.redis_password,
            max_connections=self.max_connections,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.connection_timeout,
            decode_responses=False,
            retry=retry,
            health_check_interval=self.health_check_interval
        )

        self._redis_client = aioredis.Redis(
            connection_pool=self._connection_pool,
            auto_close_connection_pool=False
        )

        try:
            await self._redis_client.ping()
            logger.info(f"Connected to Redis for collection: {self.namespace}")
        except RedisError as e:
            logger.error(f"Redis connection failed: {e}")
            raise

        self._initialized = True

    def _get_key(self, id: str) -> str:
        """Generate Redis key with namespace prefix."""
        return f"{self._prefix}{id}"

    def _serialize(self, data: Any) -> bytes:
        """Serialize data to JSON bytes."""
        return json.dumps(data, default=str).encode('utf-8')

    def _deserialize(self, data: Optional[bytes]) -> Any:
        """Deserialize data from JSON bytes."""
        if data is None:
            return None
        try:
            return json.loads(data.decode('utf-8'))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Failed to deserialize record in {self.namespace}: {e}")
            return None

    async def _all_keys(self) -> List[bytes]:
        keys = []
        # SCAN keeps memory flat for large collections
        async for key in self._redis_client.scan_iter(match=f"{self._prefix}*", count=1000):
            keys.append(key)
        return keys

    async def find(self, filter: Optional[Dict[str, Any]] = None) -> List[dict]:
        await self._ensure_initialized()

        keys = await self._all_keys()
        if not keys:
            return []

        async with self._redis_client.pipeline() as pipe:
            for key in keys:
                pipe.get(key)
            results = await pipe.execute()

        records = []
        for data in results:
            record = self._deserialize(data)
            if isinstance(record, dict) and matches_filter(record, filter):
                records.append(record)
        return records

    async def insert_one(self, record: dict) -> str:
        await self._ensure_initialized()

        record = dict(record)
        record_id = record.get("_id") or new_object_id()
        record["_id"] = record_id

        created = await self._redis_client.set(
            self._get_key(record_id), self._serialize(record), nx=True
        )
        if not created:
            raise ValueError(f"Duplicate _id {record_id} in {self.namespace}")
        return record_id

    async def update_one(self, filter: Dict[str, Any], fields: Dict[str, Any]) -> bool:
        existing = await self.find_one(filter)
        if existing is None:
            return False
        existing.update({k: v for k, v in fields.items() if k != "_id"})
        await self._redis_client.set(self._get_key(existing["_id"]), self._serialize(existing))
        return True

    async def replace_one(
        self, filter: Dict[str, Any], record: dict, upsert: bool = False
    ) -> Optional[str]:
        existing = await self.find_one(filter)
        if existing is None:
            if not upsert:
                return None
            return await self.insert_one(record)

        replacement = dict(record)
        replacement["_id"] = existing["_id"]
        await self._redis_client.set(self._get_key(existing["_id"]), self._serialize(replacement))
        return existing["_id"]

    async def delete_many(self, filter: Dict[str, Any]) -> int:
        doomed = await self.find(filter)
        if not doomed:
            return 0
        await self._redis_client.delete(*[self._get_key(r["_id"]) for r in doomed])
        logger.debug(f"Deleted {len(doomed)} records from Redis collection: {self.namespace}")
        return len(doomed)

    async def drop(self) -> None:
        """Clear all keys in namespace."""
        await self._ensure_initialized()

        pattern = f"{self._prefix}*"
        cursor = 0

        while True:
            cursor, keys = await self._redis_client.scan(
                cursor, match=pattern, count=1000
            )
            if keys:
                await self._redis_client.delete(*keys)
            if cursor == 0:
                break

        logger.info(f"Dropped all data in Redis collection: {self.namespace}")

    async def check_health(self) -> bool:
        try:
            await self._ensure_initialized()
            return bool(await self._redis_client.ping())
        except RedisError:
            return False

    async def index_done_callback(self) -> None:
        """Called after a batch of writes completes."""
        if not self._initialized:
            return

        try:
            await self._redis_client.bgsave()
            logger.debug(f"Redis data persisted for collection: {self.namespace}")
        except RedisError as e:
            logger.warning(f"Could not force Redis persistence: {e}")

    def __del__(self):
        """Cleanup Redis connection on deletion."""
        if self._initialized and self._redis_client:
            try:
                loop = asyncio.get_running_loop()
                loop.create_task(self._cleanup())
            except RuntimeError:
                # Event loop not available, skip cleanup
                pass

    async def _cleanup(self):
        """Async cleanup of Redis connections."""
        if self._redis_client:
            await self._redis_client.close()
        if self._connection_pool:
            await self._connection_pool.disconnect()

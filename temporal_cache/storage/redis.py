"""Redis async client wrapper for page cache tags and shared scheduler state.

Provides a high-level interface for the Redis operations the
invalidation layer needs, with connection pooling and error logging.
"""

from typing import Any, Dict, Iterable, Optional, Set, Union
from dataclasses import dataclass
import json
import structlog

import redis.asyncio as redis


@dataclass
class RedisConfig:
    """Redis configuration."""
    url: str
    max_connections: int = 20
    timeout: int = 30
    retry_on_timeout: bool = True


class RedisClient:
    """
    Async Redis client with connection pooling.

    Errors are logged and re-raised so callers decide how to degrade.
    """

    def __init__(self, config: Union[RedisConfig, str]):
        if isinstance(config, str):
            config = RedisConfig(url=config)
        self.config = config
        self.logger = structlog.get_logger("redis-client")
        self.client: Optional[redis.Redis] = None
        self.is_connected: bool = False

    async def connect(self) -> None:
        """Connect to Redis."""
        if self.client:
            return

        self.client = redis.from_url(
            self.config.url,
            decode_responses=True,
            max_connections=self.config.max_connections,
            socket_timeout=self.config.timeout,
            retry_on_timeout=self.config.retry_on_timeout
        )

        await self.client.ping()
        self.is_connected = True
        self.logger.info("Connected to Redis")

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self.client:
            await self.client.close()
            self.client = None
            self.is_connected = False
            self.logger.info("Disconnected from Redis")

    async def close(self) -> None:
        await self.disconnect()

    async def get(self, key: str) -> Optional[Any]:
        """Get value by key, decoding JSON when possible."""
        if not self.client:
            await self.connect()

        try:
            value = await self.client.get(key)
            if value is None:
                return None

            if isinstance(value, str):
                try:
                    return json.loads(value)
                except json.JSONDecodeError:
                    return value

            return value
        except Exception as e:
            self.logger.error("Redis get error", error=str(e), key=key)
            raise

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Set value with optional TTL."""
        if not self.client:
            await self.connect()

        stored_value = value
        if not isinstance(value, (str, bytes)):
            stored_value = json.dumps(value)

        try:
            await self.client.set(key, stored_value, ex=ttl)
            self.logger.debug("Value set", key=key, ttl=ttl)
        except Exception as e:
            self.logger.error("Redis set error", error=str(e), key=key)
            raise

    async def delete(self, *keys: str) -> int:
        """Delete keys; returns the number removed."""
        if not keys:
            return 0
        if not self.client:
            await self.connect()

        try:
            deleted = await self.client.delete(*keys)
            self.logger.debug("Keys deleted", count=len(keys), deleted=deleted)
            return deleted
        except Exception as e:
            self.logger.error("Redis delete error", error=str(e), keys=list(keys))
            raise

    async def sadd(self, key: str, *values: str) -> None:
        """Add values to set."""
        if not self.client:
            await self.connect()

        try:
            await self.client.sadd(key, *values)
            self.logger.debug("Values added to set", key=key)
        except Exception as e:
            self.logger.error("Redis sadd error", error=str(e), key=key)
            raise

    async def smembers(self, key: str) -> Set[str]:
        """Get all set members."""
        if not self.client:
            await self.connect()

        try:
            return set(await self.client.smembers(key))
        except Exception as e:
            self.logger.error("Redis smembers error", error=str(e), key=key)
            raise

    async def health_check(self) -> bool:
        """Check Redis health."""
        if not self.client:
            await self.connect()

        try:
            result = await self.client.ping()
            return result is True
        except Exception as e:
            self.logger.error("Redis health check failed", error=str(e))
            return False

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


class RedisTagInvalidator:
    """
    Tag-based page cache invalidation on Redis.

    Cached renderings are stored under their own keys; ``tag`` records
    each key in a ``tag:<name>`` set so that ``flush_by_tags`` can drop
    every rendering carrying any of the given tags.
    """

    def __init__(self, client: RedisClient, prefix: str = "tag:"):
        self.client = client
        self.prefix = prefix
        self.logger = structlog.get_logger("redis-tag-invalidator")
        self.stats: Dict[str, int] = {"flushes": 0, "keys_deleted": 0}

    def tag_key(self, tag: str) -> str:
        return f"{self.prefix}{tag}"

    async def tag(self, key: str, tags: Iterable[str]) -> None:
        """Associate a cached rendering with tags."""
        for tag in tags:
            await self.client.sadd(self.tag_key(tag), key)

    async def flush_by_tags(self, tags: Set[str]) -> int:
        """Delete every key carrying one of ``tags``, then the tag sets."""
        if not tags:
            return 0

        keys: Set[str] = set()
        for tag in tags:
            keys.update(await self.client.smembers(self.tag_key(tag)))

        deleted = await self.client.delete(*sorted(keys)) if keys else 0
        await self.client.delete(*[self.tag_key(tag) for tag in sorted(tags)])

        self.stats["flushes"] += 1
        self.stats["keys_deleted"] += deleted
        self.logger.info("Cache flushed by tags", tags=sorted(tags), keys_deleted=deleted)
        return deleted


class RedisLastRunStore:
    """Persists the scheduler's last run timestamp in Redis."""

    def __init__(self, client: RedisClient, key: str = "temporal_cache:scheduler:last_run"):
        self.client = client
        self.key = key

    async def get_last_run(self) -> Optional[int]:
        value = await self.client.get(self.key)
        if value is None:
            return None
        return int(value)

    async def set_last_run(self, timestamp: int) -> None:
        await self.client.set(self.key, str(timestamp))

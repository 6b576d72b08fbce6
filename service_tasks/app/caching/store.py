"""
Cache stores backing the Tasks response cache.
"""

import re
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

import redis.asyncio as redis

from shared.errors import CacheUnavailableError
from shared.logging import get_logger

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters so ``value`` matches literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class CacheStore(Protocol):
    """Key/value store with per-entry TTL and prefix deletion."""

    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        ...

    async def delete_prefix(self, prefix: str) -> int:
        ...

    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        ...


@dataclass(frozen=True)
class CacheEntry:
    """A stored response body and its absolute expiry."""

    key: str
    value: bytes
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class InMemoryCacheStore:
    """Process-local cache store for local runs and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self.logger = get_logger("tasks.cache.memory")

    async def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._entries.pop(key, None)
            return None
        return entry.value

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        # Entries are replaced whole, never mutated
        self._entries[key] = CacheEntry(
            key=key,
            value=bytes(value),
            expires_at=self._clock() + ttl_seconds,
        )

    async def delete_prefix(self, prefix: str) -> int:
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()

    def keys(self):
        """Keys currently held, expired or not."""
        return list(self._entries)


class RedisCacheStore:
    """Redis-backed cache store."""

    def __init__(self, redis_url: str, *, socket_timeout: float = 2.0):
        self.redis_url = redis_url
        self.socket_timeout = socket_timeout
        self.logger = get_logger("tasks.cache.redis")
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                health_check_interval=30,
            )
        return self._redis

    async def start(self) -> None:
        """Open the connection; an unreachable Redis only degrades caching."""
        if await self.ping():
            self.logger.info("Redis cache started", redis_url=self.redis_url)
        else:
            self.logger.warning("Redis cache unreachable at startup; serving uncached", redis_url=self.redis_url)

    async def get(self, key: str) -> Optional[bytes]:
        try:
            redis_client = await self._get_redis()
            return await redis_client.get(key)
        except (redis.RedisError, OSError) as exc:
            raise CacheUnavailableError("Cache get failed", details={"key": key, "error": str(exc)}) from exc

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        try:
            redis_client = await self._get_redis()
            # SETEX writes value and TTL atomically
            await redis_client.setex(key, ttl_seconds, value)
        except (redis.RedisError, OSError) as exc:
            raise CacheUnavailableError("Cache set failed", details={"key": key, "error": str(exc)}) from exc

    async def delete_prefix(self, prefix: str) -> int:
        pattern = f"{escape_glob(prefix)}*"
        try:
            redis_client = await self._get_redis()
            keys = await redis_client.keys(pattern)
            if not keys:
                return 0
            await redis_client.delete(*keys)
            return len(keys)
        except (redis.RedisError, OSError) as exc:
            raise CacheUnavailableError("Cache clear failed", details={"pattern": pattern, "error": str(exc)}) from exc

    async def ping(self) -> bool:
        try:
            redis_client = await self._get_redis()
            return bool(await redis_client.ping())
        except (redis.RedisError, OSError) as exc:
            self.logger.warning("Redis ping failed", error=str(exc))
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("Redis cache stopped")

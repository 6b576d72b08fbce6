"""
Tasks caching package.

Provides the response cache used by the Tasks service to avoid recomputing
idempotent reads. Prefer short-lived entries and explicit, scope-wide
invalidation on every write.
"""

from .response_cache import ResponseCache
from .store import CacheEntry, CacheStore, InMemoryCacheStore, RedisCacheStore

__all__ = [
    "CacheEntry",
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "ResponseCache",
]

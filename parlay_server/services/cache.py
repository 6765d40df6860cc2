# parlay_server/services/cache.py
"""
Market lookup cache.

Every cache is an explicit object handed to the service that uses it, so
tests and workers never share hidden module state. Entries expire after
`ttl` seconds; `invalidate` drops one key or everything.
"""
from collections import OrderedDict
import json
import time
from typing import Any, Callable, Optional

from redis import Redis

from ..config import MARKET_CACHE_MAX_ENTRIES, MARKET_CACHE_TTL, REDIS_URL, logger


class TTLCache:
    """In-process cache; oldest entries are evicted past `max_entries`."""

    def __init__(
        self,
        ttl: float = MARKET_CACHE_TTL,
        max_entries: int = MARKET_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, tuple]" = OrderedDict()

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (self._clock() + self.ttl, value)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache:
    """Shared cache for multi-worker deployments; values are stored as JSON."""

    def __init__(self, client: Redis, ttl: float = MARKET_CACHE_TTL, prefix: str = "market:"):
        self.redis = client
        self.ttl = ttl
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        raw = self.redis.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self.redis.setex(self._key(key), max(1, int(self.ttl)), json.dumps(value))

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is not None:
            self.redis.delete(self._key(key))
            return

        keys = list(self.redis.scan_iter(match=f"{self.prefix}*"))
        if keys:
            self.redis.delete(*keys)


def build_cache(redis_url: Optional[str] = REDIS_URL):
    if redis_url:
        logger.info("Using Redis market cache")
        return RedisCache(Redis.from_url(redis_url))
    return TTLCache()

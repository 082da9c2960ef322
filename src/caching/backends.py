"""
Key-value backends for the cache layer.

Supports two backends:
1. InMemory: For development/testing
2. Redis: For production (when REDIS_ENABLED is set)

Both expose the same small surface: get, setex, delete, delete_pattern,
ping. Values are opaque strings; expiry bookkeeping beyond the backend's
own TTL lives in CacheManager.
"""

import fnmatch
import time
from threading import Lock
from typing import Callable, Dict, List, Optional, Protocol, Tuple


class CacheBackend(Protocol):
    name: str

    def get(self, key: str) -> Optional[str]:
        ...

    def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        ...

    def delete(self, *keys: str) -> int:
        ...

    def delete_pattern(self, pattern: str) -> int:
        ...

    def ping(self) -> bool:
        ...


# =============================================================================
# In-Memory Backend
# =============================================================================

class InMemoryCacheBackend:
    """
    Process-local cache storage.

    Expired entries are dropped when touched or during a periodic sweep.
    Note: contents are lost on restart and not shared across workers.
    """

    name = "in_memory"

    def __init__(self, clock: Callable[[], float] = time.time, cleanup_interval: int = 3600):
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = Lock()
        self._clock = clock
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = clock()

    def _maybe_cleanup(self) -> None:
        now = self._clock()
        if now - self._last_cleanup <= self._cleanup_interval:
            return
        with self._lock:
            expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
        self._last_cleanup = now

    def get(self, key: str) -> Optional[str]:
        self._maybe_cleanup()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    removed += 1
        return removed

    def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            matched = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
            for key in matched:
                del self._entries[key]
        return len(matched)

    def ping(self) -> bool:
        return True

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries)


# =============================================================================
# Redis Backend
# =============================================================================

class RedisCacheBackend:
    """
    Redis-based cache storage for production.

    The connection is created lazily by redis-py; nothing is sent until
    the first command, so constructing the backend never fails on an
    unreachable server.
    """

    name = "redis"

    def __init__(self, redis_url: str, socket_timeout: float = 2.0, client=None):
        if client is None:
            import redis
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
            )
        self._redis = client
        self._url = redis_url.split("@")[-1]

    def get(self, key: str) -> Optional[str]:
        return self._redis.get(key)

    def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        self._redis.setex(key, ttl_seconds, value)

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(self._redis.delete(*keys))

    def delete_pattern(self, pattern: str) -> int:
        # SCAN instead of KEYS so large keyspaces don't block the server
        batch: List[str] = []
        removed = 0
        for key in self._redis.scan_iter(match=pattern, count=500):
            batch.append(key)
            if len(batch) >= 500:
                removed += self.delete(*batch)
                batch = []
        if batch:
            removed += self.delete(*batch)
        return removed

    def ping(self) -> bool:
        return bool(self._redis.ping())

    def __repr__(self) -> str:
        return f"RedisCacheBackend({self._url})"

"""
Cache layer for feed, search and profile payloads.

Guarantees:
A. Size ceiling: payloads over the namespace ceiling are skipped, never
   truncated (smaller ceiling for community feed keys).
B. Lazy expiry: an entry older than its ttl is a miss even if the
   backend still holds it.
C. Whole-entry replace: set always writes a complete envelope.
D. Graceful degradation: a missing or failing backend turns every call
   into a miss / no-op; callers never see cache exceptions.
"""

import json
import time
from typing import Any, Callable, Dict, Optional

from caching.backends import CacheBackend
from config.settings import Settings, get_settings
from core.logging import get_logger

logger = get_logger(__name__)

_MISS = object()


class CacheManager:
    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
        retry_interval_seconds: float = 5.0,
    ):
        self._backend = backend
        self._settings = settings or get_settings()
        self._clock = clock
        self._retry_interval = retry_interval_seconds
        self._connected = backend is not None
        self._last_failure: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CacheManager":
        """Redis-backed manager when enabled in config, otherwise a no-op manager."""
        settings = settings or get_settings()
        if not settings.redis_enabled:
            logger.info("Cache disabled, running uncached")
            return cls(backend=None, settings=settings)

        from caching.backends import RedisCacheBackend
        try:
            backend = RedisCacheBackend(settings.redis_url)
        except Exception as e:
            logger.warning("Redis cache unavailable, running uncached", error=str(e))
            return cls(backend=None, settings=settings)
        return cls(backend=backend, settings=settings)

    # =========================================================================
    # Availability
    # =========================================================================

    @property
    def enabled(self) -> bool:
        return self._backend is not None

    def _available(self) -> bool:
        if self._backend is None:
            return False
        if self._connected:
            return True
        if self._last_failure is not None and self._clock() - self._last_failure < self._retry_interval:
            return False
        try:
            self._connected = bool(self._backend.ping())
        except Exception as e:
            self._mark_failed("ping", e)
            return False
        if self._connected:
            logger.info("Cache backend reconnected", backend=self._backend.name)
        return self._connected

    def _mark_failed(self, operation: str, error: Exception, key: Optional[str] = None) -> None:
        self._connected = False
        self._last_failure = self._clock()
        logger.warning("Cache operation failed", operation=operation, key=key, error=str(error))

    # =========================================================================
    # Keys & limits
    # =========================================================================

    def _full_key(self, key: str) -> str:
        return f"{self._settings.cache_key_prefix}{key}"

    def size_limit(self, key: str) -> int:
        if key.startswith(self._settings.cache_feed_namespace):
            return self._settings.cache_feed_max_bytes
        return self._settings.cache_max_bytes

    # =========================================================================
    # Operations
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Cached value, or `default` on miss, expiry or backend failure."""
        if not self._available():
            return default
        full_key = self._full_key(key)
        try:
            raw = self._backend.get(full_key)
        except Exception as e:
            self._mark_failed("get", e, key)
            return default
        if raw is None:
            return default

        try:
            envelope = json.loads(raw)
            stored_at = float(envelope["stored_at"])
            ttl = float(envelope["ttl"])
            value = envelope["value"]
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable cache entry", key=key)
            self._safe_delete(full_key)
            return default

        if self._clock() - stored_at >= ttl:
            self._safe_delete(full_key)
            return default
        return value

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """
        Store `value` for `ttl` seconds.

        Returns:
            True when stored; False when skipped (too large, disabled, failed).
        """
        if ttl <= 0 or not self._available():
            return False

        try:
            serialized_value = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning("Value not serializable, skipping cache", key=key, error=str(e))
            return False

        size_bytes = len(serialized_value.encode("utf-8"))
        limit = self.size_limit(key)
        if size_bytes > limit:
            logger.info(
                "Payload too large to cache, skipping",
                key=key,
                size_bytes=size_bytes,
                limit_bytes=limit,
            )
            return False

        envelope = json.dumps({
            "stored_at": self._clock(),
            "ttl": ttl,
            "value": json.loads(serialized_value),
        })
        try:
            self._backend.setex(self._full_key(key), int(ttl), envelope)
        except Exception as e:
            self._mark_failed("set", e, key)
            return False

        logger.debug("Cached entry", key=key, size_bytes=size_bytes, ttl=ttl)
        return True

    def get_or_compute(self, key: str, ttl: int, compute: Callable[[], Any]) -> Any:
        """Return the cached value or compute, store (best effort) and return it."""
        cached = self.get(key, _MISS)
        if cached is not _MISS:
            return cached
        value = compute()
        self.set(key, value, ttl)
        return value

    def delete(self, key: str) -> None:
        if self._available():
            self._safe_delete(self._full_key(key))

    def invalidate(self, pattern: str) -> int:
        """Remove every key matching a namespace wildcard like 'community:feed:*'."""
        if not self._available():
            return 0
        try:
            removed = self._backend.delete_pattern(self._full_key(pattern))
        except Exception as e:
            self._mark_failed("invalidate", e, pattern)
            return 0
        if removed:
            logger.info("Invalidated cache keys", pattern=pattern, count=removed)
        return removed

    def invalidate_user(self, user_id: str) -> int:
        return sum(
            self.invalidate(pattern)
            for pattern in (f"user:{user_id}:*", f"search:*:{user_id}")
        )

    def _safe_delete(self, full_key: str) -> None:
        try:
            self._backend.delete(full_key)
        except Exception as e:
            self._mark_failed("delete", e, full_key)

    # =========================================================================
    # Health
    # =========================================================================

    def ping(self) -> bool:
        if self._backend is None:
            return False
        try:
            ok = bool(self._backend.ping())
        except Exception as e:
            self._mark_failed("ping", e)
            return False
        self._connected = ok
        return ok

    def stats(self) -> Dict[str, Any]:
        if self._backend is None:
            return {"connected": False, "error": "cache not configured"}
        return {
            "connected": self.ping(),
            "backend": self._backend.name,
            "feed_limit_bytes": self._settings.cache_feed_max_bytes,
            "limit_bytes": self._settings.cache_max_bytes,
        }

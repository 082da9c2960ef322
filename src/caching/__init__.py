"""
Size- and TTL-bounded cache layer with pluggable backends.
"""

from caching.backends import CacheBackend, InMemoryCacheBackend, RedisCacheBackend
from caching.manager import CacheManager

__all__ = [
    "CacheBackend",
    "CacheManager",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
]

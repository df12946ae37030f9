"""
Cache Module

Provides two-tier caching (L1 in-process + L2 Redis).
"""

from .cache_manager import CacheManager, CacheObserver, build_cache_manager, build_key, response_key
from .local_cache import LocalCache
from .redis_client import RedisClient

__all__ = [
    "CacheManager",
    "CacheObserver",
    "LocalCache",
    "RedisClient",
    "build_cache_manager",
    "build_key",
    "response_key",
]

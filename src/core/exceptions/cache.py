"""
Cache-Related Exceptions

All exceptions related to caching operations (Redis, in-process cache).

These never cross the HTTP boundary: the cache tiers raise them internally
and the tier that raised them logs and absorbs them, turning the failure
into a miss or a skipped write.

Author: Platform Team
Date: 2026-10-18
"""

from src.core.exceptions.base import ShopBaseError


class CacheError(ShopBaseError):
    """Base exception for cache-related errors."""
    pass


class CacheSerializationError(CacheError):
    """
    Raised when a value cannot be serialized for, or decoded from, a cache tier.
    """
    pass

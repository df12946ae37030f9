"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the shop API and its response cache.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for key prefixes and TTL ceilings
- Type-safe enums for state management
- Easy to update and track changes

Author: Platform Team
Date: 2026-10-18
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Cache processing stages used as the `stage` field of log entries.

    Reading a log line's stage tells you which tier or protocol step
    produced it without opening the code.
    """

    INITIALIZATION = "0.0_INITIALIZATION"
    L1_LOOKUP = "2.1_L1_CACHE_LOOKUP"
    L2_LOOKUP = "2.2_L2_CACHE_LOOKUP"
    CACHE_POPULATE = "2.3_CACHE_POPULATE"
    CACHE_INVALIDATE = "2.4_CACHE_INVALIDATE"
    CACHE_ASIDE = "2.5_CACHE_ASIDE"
    L1_SWEEP = "2.6_L1_EXPIRY_SWEEP"
    RESPONSE_CACHE = "3.0_RESPONSE_CACHE"
    SHUTDOWN = "6.0_SHUTDOWN"

    REDIS_CONNECT = "REDIS.CONNECT"
    REDIS_RECONNECT = "REDIS.RECONNECT"
    REDIS_OPERATION = "REDIS.OP"


# ============================================================================
# Cache Tiers
# ============================================================================


class CacheTier(str, Enum):
    """
    Cache tiers.

    L1: In-process TTL/LRU cache (fastest, node-local)
    L2: Redis distributed cache (shared across instances)
    """

    L1 = "l1"
    L2 = "l2"


class DistributedCacheState(str, Enum):
    """
    Connection state of the distributed tier.

    DISABLED: no connection configured, local-only caching
    DISCONNECTED: configured but connect() not called yet (or after disconnect())
    CONNECTING: first connect in progress
    CONNECTED: commands are sent to Redis
    RECONNECTING: connection lost, backoff loop running
    UNAVAILABLE: reconnect attempts exhausted; connect() again to resume
    """

    DISABLED = "disabled"
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    UNAVAILABLE = "unavailable"


# ============================================================================
# Cache Sizes and TTLs
# ============================================================================

L1_CACHE_MAX_SIZE = 5000  # Maximum entries in the local cache
L1_DEFAULT_TTL = 300  # Local TTL when none is given (5 minutes)
L1_MAX_TTL = 300  # Local ceiling for write-through entries
L1_BACKFILL_TTL = 60  # Local TTL for values pulled up from Redis
L1_CHECK_PERIOD = 60  # Expiry sweep interval (seconds)

REDIS_SCAN_COUNT = 500  # SCAN page size hint for pattern deletes

# ============================================================================
# Cache Key Prefixes
# ============================================================================

# Full JSON responses, keyed by path + query string
CACHE_KEY_RESPONSE = "cache"

# Application-level data caches
CACHE_KEY_PRODUCT = "product"
CACHE_KEY_PRODUCT_FORM_DATA = "product_form_data"
CACHE_KEY_POPULAR_PRODUCTS = "popular_products"
CACHE_KEY_SEARCH = "search"
CACHE_KEY_RELATED_PRODUCTS = "related_products"

# Application cache TTLs (seconds)
TTL_PRODUCT_DETAIL = 600
TTL_PRODUCT_FORM_DATA = 7200
TTL_POPULAR_PRODUCTS = 600
TTL_SEARCH = 180
TTL_RELATED_PRODUCTS = 900

# ============================================================================
# Catalog
# ============================================================================

PRODUCT_STATUSES = ("active", "inactive", "draft")
PRODUCT_SORT_FIELDS = ("created_at", "price", "name", "views")
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_REQUEST_ID = "X-Request-ID"
HEADER_CACHE_STATUS = "X-Cache"

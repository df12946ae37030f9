"""
Configuration Module

This module provides centralized, type-safe configuration management
for the shop API.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: System-wide constants, enums, key prefixes and TTL ceilings

Usage:
------
```python
from src.core.config import get_settings
from src.core.config.constants import CACHE_KEY_RESPONSE, DistributedCacheState

settings = get_settings()
redis_url = settings.redis.REDIS_URL
```

Environment Variables:
---------------------
```bash
# Distributed cache (omit REDIS_URL for local-only caching)
REDIS_URL=redis://localhost:6379
REDIS_PASSWORD=...
ENABLE_DISTRIBUTED_CACHE=true

# Local cache
CACHE_L1_MAX_SIZE=5000
CACHE_L1_MAX_TTL=300

# Logging
LOG_LEVEL=INFO
LOG_FORMAT=json
```

Testing:
-------
```python
import os
from src.core.config import reload_settings

os.environ["REDIS_URL"] = "redis://test-redis:6379"
settings = reload_settings()
assert settings.redis.distributed_enabled
```

Author: Platform Team
Date: 2026-10-18
"""

from src.core.config.constants import (
    CACHE_KEY_RESPONSE,
    HEADER_CACHE_STATUS,
    HEADER_REQUEST_ID,
    L1_BACKFILL_TTL,
    L1_CACHE_MAX_SIZE,
    L1_MAX_TTL,
    CacheTier,
    DistributedCacheState,
    Stage,
)
from src.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "reload_settings",
    # Enums
    "Stage",
    "CacheTier",
    "DistributedCacheState",
    # Cache
    "CACHE_KEY_RESPONSE",
    "L1_CACHE_MAX_SIZE",
    "L1_MAX_TTL",
    "L1_BACKFILL_TTL",
    # HTTP headers
    "HEADER_REQUEST_ID",
    "HEADER_CACHE_STATUS",
]

"""
Exception Module

Structured exception hierarchy for the shop API.

Module Structure:
-----------------
- **base.py**: ShopBaseError base class + ConfigurationError
- **cache.py**: Cache-related exceptions (absorbed inside the cache tiers)
- **domain.py**: Catalog errors that map to 4xx responses

Usage:
------
```python
from src.core.exceptions import CacheSerializationError, NotFoundError
```

Author: Platform Team
Date: 2026-10-18
"""

from src.core.exceptions.base import ConfigurationError, ShopBaseError
from src.core.exceptions.cache import CacheError, CacheSerializationError
from src.core.exceptions.domain import ConflictError, DomainError, NotFoundError, ValidationError

__all__ = [
    # Base
    "ShopBaseError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheSerializationError",
    # Domain
    "DomainError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
]

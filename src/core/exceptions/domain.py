"""
Domain Exceptions

Errors raised by the catalog services and surfaced to API clients.

Author: Platform Team
Date: 2026-10-18
"""

from src.core.exceptions.base import ShopBaseError


class DomainError(ShopBaseError):
    """Base exception for catalog/domain errors."""
    status_code = 400


class NotFoundError(DomainError):
    """Raised when a requested document does not exist."""
    status_code = 404


class ValidationError(DomainError):
    """
    Raised when a write is rejected by domain rules.

    Common causes:
    - Referencing an unknown category or brand
    - Negative price or stock
    """
    status_code = 422


class ConflictError(DomainError):
    """Raised when a write collides with an existing document (duplicate slug)."""
    status_code = 409

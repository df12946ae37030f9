"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .cache_factory import CacheTestFactory, FakeClock, FakeRedis
from .request_factory import RequestFactory

__all__ = ["CacheTestFactory", "FakeClock", "FakeRedis", "RequestFactory"]

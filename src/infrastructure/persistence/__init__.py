"""
Persistence Module

Document storage used by the catalog services.
"""

from .document_store import InMemoryDocumentStore

__all__ = ["InMemoryDocumentStore"]

"""
Document Store Infrastructure for AllCare

Exports the store interfaces, concrete backends and the configured
store provider.
"""

from functools import lru_cache

from allcare.config.settings import get_settings
from allcare.infrastructure.store.base import (
    Document,
    DocumentStore,
    IReadStore,
    IWriteStore,
    join_path,
    split_path,
)
from allcare.infrastructure.store.memory_store import InMemoryDocumentStore


@lru_cache
def get_document_store() -> DocumentStore:
    """Build the store selected by STORE_BACKEND (cached)."""
    settings = get_settings()

    if settings.store_backend == "supabase":
        from allcare.infrastructure.store.supabase_store import SupabaseDocumentStore
        return SupabaseDocumentStore()

    if settings.store_backend == "database":
        from allcare.infrastructure.store.sql_store import SqlDocumentStore
        return SqlDocumentStore()

    return InMemoryDocumentStore()


__all__ = [
    "Document",
    "DocumentStore",
    "IReadStore",
    "IWriteStore",
    "InMemoryDocumentStore",
    "get_document_store",
    "join_path",
    "split_path",
]

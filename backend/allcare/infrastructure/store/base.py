"""
Document Store Interfaces for AllCare

Async key-path access to a hierarchical document store.
Read and write concerns are split so read-only collaborators
(e.g. the plan catalog) can depend on the narrower interface.

Paths are ``/``-separated segments, e.g. ``paymentsubscriptions/a@b,com``.
Writes are whole-document overwrites; ``update`` merges top-level keys
for stores and callers that need it.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


Document = Dict[str, Any]


def split_path(path: str) -> list[str]:
    """Split a store path into non-empty segments."""
    segments = [segment for segment in path.strip("/").split("/") if segment]
    if not segments:
        raise ValueError("Store path must contain at least one segment")
    return segments


def join_path(*segments: str) -> str:
    return "/".join(segment.strip("/") for segment in segments if segment)


class IReadStore(ABC):
    """Interface for read operations."""

    @abstractmethod
    async def get(self, path: str) -> Optional[Any]:
        """
        Read the value at a path.

        Returns:
            The document (or collection of child documents), None if absent
        """
        pass

    async def exists(self, path: str) -> bool:
        """Check if anything is stored at a path."""
        return await self.get(path) is not None


class IWriteStore(ABC):
    """Interface for write operations."""

    @abstractmethod
    async def set(self, path: str, document: Document) -> None:
        """Overwrite the whole document at a path."""
        pass

    @abstractmethod
    async def update(self, path: str, fields: Document) -> None:
        """Merge top-level fields into the document at a path."""
        pass

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """
        Delete the document at a path.

        Returns:
            True if deleted, False if nothing was stored there
        """
        pass


class DocumentStore(IReadStore, IWriteStore):
    """Full read/write document store."""

    async def close(self) -> None:
        """Release any held connections."""
        return None

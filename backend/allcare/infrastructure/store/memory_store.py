"""
In-Memory Document Store

Process-local hierarchical store backed by nested dicts.
Used in development and as the substitute store in tests.
"""

import copy
import logging
from typing import Any, Optional

from allcare.infrastructure.store.base import Document, DocumentStore, split_path


logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """
    Hierarchical store of nested dicts.

    Values are deep-copied on the way in and out.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._root: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    @property
    def data(self) -> dict[str, Any]:
        """Snapshot of the whole tree."""
        return copy.deepcopy(self._root)

    def _parent(self, segments: list[str], create: bool) -> Optional[dict[str, Any]]:
        node = self._root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                if not create:
                    return None
                child = {}
                node[segment] = child
            node = child
        return node

    async def get(self, path: str) -> Optional[Any]:
        segments = split_path(path)
        parent = self._parent(segments, create=False)
        if parent is None:
            return None
        value = parent.get(segments[-1])
        return copy.deepcopy(value)

    async def set(self, path: str, document: Document) -> None:
        segments = split_path(path)
        parent = self._parent(segments, create=True)
        parent[segments[-1]] = copy.deepcopy(document)
        logger.debug(f"Stored document at {path}")

    async def update(self, path: str, fields: Document) -> None:
        segments = split_path(path)
        parent = self._parent(segments, create=True)
        current = parent.get(segments[-1])
        if not isinstance(current, dict):
            current = {}
        current.update(copy.deepcopy(fields))
        parent[segments[-1]] = current

    async def delete(self, path: str) -> bool:
        segments = split_path(path)
        parent = self._parent(segments, create=False)
        if parent is None or segments[-1] not in parent:
            return False
        del parent[segments[-1]]
        return True

"""
SQL Document Store

Stores documents as JSON rows of the ``documents`` table through
async SQLModel sessions.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlmodel import select

from allcare.infrastructure.db.database import DatabaseManager, get_db_manager
from allcare.infrastructure.db.models.document import DocumentRecord
from allcare.infrastructure.exceptions import StoreError
from allcare.infrastructure.store.base import Document, DocumentStore, split_path


logger = logging.getLogger(__name__)


class SqlDocumentStore(DocumentStore):
    """Document store on a relational table, one row per path."""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self._db = db or get_db_manager()

    @property
    def db(self) -> DatabaseManager:
        return self._db

    def _wrap(self, operation: str, path: str, error: Exception) -> StoreError:
        logger.error(f"Database {operation} failed for {path}: {error}")
        return StoreError(
            f"Failed to {operation} document",
            operation=operation,
            path=path,
            original_error=error,
        )

    async def get(self, path: str) -> Optional[Any]:
        key = "/".join(split_path(path))
        prefix = f"{key}/"
        try:
            async with self._db.session() as session:
                record = await session.get(DocumentRecord, key)
                if record is not None:
                    return dict(record.data)

                statement = select(DocumentRecord).where(
                    DocumentRecord.path.startswith(prefix)
                )
                result = await session.execute(statement)
                rows = result.scalars().all()
        except Exception as e:
            raise self._wrap("get", key, e) from e

        children = {}
        for row in rows:
            if not row.path.startswith(prefix):
                continue
            remainder = row.path[len(prefix):]
            if remainder and "/" not in remainder:
                children[remainder] = dict(row.data)
        return children or None

    async def set(self, path: str, document: Document) -> None:
        key = "/".join(split_path(path))
        try:
            async with self._db.session() as session:
                record = await session.get(DocumentRecord, key)
                if record is None:
                    record = DocumentRecord(path=key, data=dict(document))
                else:
                    record.data = dict(document)
                    record.updated_at = datetime.now(timezone.utc)
                session.add(record)
        except Exception as e:
            raise self._wrap("set", key, e) from e
        logger.debug(f"Stored document at {key}")

    async def update(self, path: str, fields: Document) -> None:
        current = await self.get(path)
        merged = dict(current) if isinstance(current, dict) else {}
        merged.update(fields)
        await self.set(path, merged)

    async def delete(self, path: str) -> bool:
        key = "/".join(split_path(path))
        try:
            async with self._db.session() as session:
                record = await session.get(DocumentRecord, key)
                if record is None:
                    return False
                await session.delete(record)
                return True
        except Exception as e:
            raise self._wrap("delete", key, e) from e

    async def close(self) -> None:
        await self._db.close()

"""
Supabase Document Store

Maps store paths onto rows of a Supabase table:

    documents(path text primary key, data jsonb, updated_at timestamptz)

Collection reads (e.g. ``membershipPlans``) return the direct children
of the path as ``{child_key: data}``.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from supabase import create_client, Client
from supabase.lib.client_options import ClientOptions

from allcare.config.settings import get_settings
from allcare.infrastructure.exceptions import ConfigurationError, StoreError
from allcare.infrastructure.store.base import Document, DocumentStore, split_path


logger = logging.getLogger(__name__)


class SupabaseDocumentStore(DocumentStore):
    """
    Document store on a Supabase (PostgREST) table.

    The supabase client is synchronous, so every call runs in a worker
    thread via ``asyncio.to_thread``.
    """

    def __init__(self, client: Optional[Client] = None, table: Optional[str] = None):
        settings = get_settings()
        self._client = client
        self._table = table or settings.supabase_documents_table

    @property
    def client(self) -> Client:
        if self._client is None:
            settings = get_settings()
            if not settings.supabase_url or not settings.supabase_service_role_key:
                raise ConfigurationError(
                    "Supabase credentials are not configured",
                    missing_keys=["SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"],
                )
            options = ClientOptions(postgrest_client_timeout=30)
            self._client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key,
                options,
            )
            logger.info(f"Supabase document store initialized on table '{self._table}'")
        return self._client

    async def _run(self, operation: str, path: str, call):
        try:
            return await asyncio.to_thread(call)
        except Exception as e:
            logger.error(f"Supabase {operation} failed for {path}: {e}")
            raise StoreError(
                f"Failed to {operation} document",
                operation=operation,
                path=path,
                original_error=e,
            ) from e

    async def get(self, path: str) -> Optional[Any]:
        key = "/".join(split_path(path))

        response = await self._run(
            "get", key,
            lambda: self.client.table(self._table)
            .select("data")
            .eq("path", key)
            .limit(1)
            .execute()
        )
        if response.data:
            return response.data[0]["data"]

        prefix = f"{key}/"
        response = await self._run(
            "get", key,
            lambda: self.client.table(self._table)
            .select("path, data")
            .like("path", f"{prefix}%")
            .execute()
        )

        children = {}
        for row in response.data or []:
            child_path = row["path"]
            if not child_path.startswith(prefix):
                continue
            remainder = child_path[len(prefix):]
            if remainder and "/" not in remainder:
                children[remainder] = row["data"]

        return children or None

    async def set(self, path: str, document: Document) -> None:
        key = "/".join(split_path(path))
        row = {
            "path": key,
            "data": document,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        await self._run(
            "set", key,
            lambda: self.client.table(self._table)
            .upsert(row, on_conflict="path")
            .execute()
        )
        logger.debug(f"Stored document at {key}")

    async def update(self, path: str, fields: Document) -> None:
        current = await self.get(path)
        merged = dict(current) if isinstance(current, dict) else {}
        merged.update(fields)
        await self.set(path, merged)

    async def delete(self, path: str) -> bool:
        key = "/".join(split_path(path))
        response = await self._run(
            "delete", key,
            lambda: self.client.table(self._table)
            .delete()
            .eq("path", key)
            .execute()
        )
        return bool(response.data)

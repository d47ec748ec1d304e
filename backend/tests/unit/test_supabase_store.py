"""
Unit tests for the Supabase document store.

The supabase client is replaced with a MagicMock; only the query
chains the store builds are asserted.
"""

import pytest
from unittest.mock import MagicMock, patch

from allcare.infrastructure.exceptions import ConfigurationError, StoreError
from allcare.infrastructure.store.supabase_store import SupabaseDocumentStore


def response(data):
    return MagicMock(data=data)


@pytest.fixture
def mock_client():
    return MagicMock()


@pytest.fixture
def table(mock_client):
    return mock_client.table.return_value


@pytest.fixture
def supabase_store(mock_client):
    return SupabaseDocumentStore(client=mock_client, table="documents")


class TestSupabaseDocumentStore:
    """Tests for SupabaseDocumentStore."""

    @pytest.mark.asyncio
    async def test_get_exact_document(self, supabase_store, mock_client, table):
        table.select.return_value.eq.return_value.limit.return_value.execute.return_value = response(
            [{"data": {"walletBalance": 100.0}}]
        )

        document = await supabase_store.get("paymentsubscriptions/a@b,com")

        assert document == {"walletBalance": 100.0}
        mock_client.table.assert_called_with("documents")
        table.select.return_value.eq.assert_called_with("path", "paymentsubscriptions/a@b,com")
        table.select.return_value.like.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_collection_children(self, supabase_store, table):
        table.select.return_value.eq.return_value.limit.return_value.execute.return_value = response([])
        table.select.return_value.like.return_value.execute.return_value = response([
            {"path": "membershipPlans/monthly", "data": {"title": "Monthly Plan"}},
            {"path": "membershipPlans/annual", "data": {"title": "Annual Plan"}},
            {"path": "membershipPlans/annual/notes", "data": {"text": "nested"}},
        ])

        plans = await supabase_store.get("membershipPlans")

        assert plans == {
            "monthly": {"title": "Monthly Plan"},
            "annual": {"title": "Annual Plan"},
        }
        table.select.return_value.like.assert_called_with("path", "membershipPlans/%")

    @pytest.mark.asyncio
    async def test_get_missing(self, supabase_store, table):
        table.select.return_value.eq.return_value.limit.return_value.execute.return_value = response([])
        table.select.return_value.like.return_value.execute.return_value = response([])

        assert await supabase_store.get("paymentsubscriptions/nobody") is None

    @pytest.mark.asyncio
    async def test_set_upserts_on_path(self, supabase_store, table):
        await supabase_store.set("/paymentsubscriptions/a@b,com/", {"active": True})

        row = table.upsert.call_args.args[0]
        assert row["path"] == "paymentsubscriptions/a@b,com"
        assert row["data"] == {"active": True}
        assert "updated_at" in row
        assert table.upsert.call_args.kwargs == {"on_conflict": "path"}
        table.upsert.return_value.execute.assert_called_once()

    @pytest.mark.asyncio
    async def test_update_merges(self, supabase_store, table):
        table.select.return_value.eq.return_value.limit.return_value.execute.return_value = response(
            [{"data": {"a": 1, "b": 2}}]
        )

        await supabase_store.update("docs/one", {"b": 3})

        assert table.upsert.call_args.args[0]["data"] == {"a": 1, "b": 3}

    @pytest.mark.asyncio
    async def test_delete(self, supabase_store, table):
        table.delete.return_value.eq.return_value.execute.return_value = response([{"path": "docs/one"}])
        assert await supabase_store.delete("docs/one") is True

        table.delete.return_value.eq.return_value.execute.return_value = response([])
        assert await supabase_store.delete("docs/one") is False

    @pytest.mark.asyncio
    async def test_client_errors_become_store_errors(self, supabase_store, table):
        table.upsert.return_value.execute.side_effect = RuntimeError("connection reset")

        with pytest.raises(StoreError) as exc_info:
            await supabase_store.set("docs/one", {"a": 1})

        assert exc_info.value.details == {"operation": "set", "path": "docs/one"}
        assert isinstance(exc_info.value.original_error, RuntimeError)

    def test_missing_credentials(self):
        store = SupabaseDocumentStore()
        settings = MagicMock(supabase_url=None, supabase_service_role_key=None)

        with patch("allcare.infrastructure.store.supabase_store.get_settings", return_value=settings):
            with pytest.raises(ConfigurationError):
                store.client

    def test_client_created_lazily(self):
        store = SupabaseDocumentStore()
        settings = MagicMock(supabase_url="https://example.supabase.co", supabase_service_role_key="key")

        with patch("allcare.infrastructure.store.supabase_store.get_settings", return_value=settings), \
             patch("allcare.infrastructure.store.supabase_store.create_client") as mock_create:
            client = store.client
            assert store.client is client

        mock_create.assert_called_once()
        assert mock_create.call_args.args[:2] == ("https://example.supabase.co", "key")

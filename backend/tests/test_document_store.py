"""
Tests for the SQLAlchemy-backed document store.

Tests cover:
- add / get / update / delete round trips
- DocumentNotFound on missing ids
- Batch delete by query
- Ordered reads (missing fields last)
- Snapshot listeners (initial snapshot, change notifications, unsubscribe)

Uses an in-memory aiosqlite database per test.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import init_db
from app.services.document_store import (
    DocumentNotFound,
    SqlDocumentStore,
    matches_query,
    sort_snapshot,
)


@pytest.fixture
async def store():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await init_db(bind=engine)
    yield SqlDocumentStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    await engine.dispose()


class TestSortAndQueryHelpers:
    """Tests for the pure snapshot helpers."""

    def test_sort_ascending_with_missing_last(self):
        docs = [{"id": "a", "name": "b"}, {"id": "b"}, {"id": "c", "name": "a"}]
        assert [d["id"] for d in sort_snapshot(docs, "name")] == ["c", "a", "b"]

    def test_sort_descending_keeps_missing_last(self):
        docs = [{"id": "a", "n": 1}, {"id": "b", "n": None}, {"id": "c", "n": 3}]
        assert [d["id"] for d in sort_snapshot(docs, "n", descending=True)] == ["c", "a", "b"]

    def test_sort_tolerates_mixed_value_types(self):
        docs = [
            {"id": "iso", "posted": "2030-01-02T00:00:00+00:00"},
            {"id": "none"},
            {"id": "epoch", "posted": 1893456000},
            {"id": "iso-old", "posted": "2029-01-01T00:00:00+00:00"},
        ]

        ascending = [d["id"] for d in sort_snapshot(docs, "posted")]
        descending = [d["id"] for d in sort_snapshot(docs, "posted", descending=True)]

        assert ascending == ["epoch", "iso-old", "iso", "none"]
        assert descending == ["iso", "iso-old", "epoch", "none"]

    def test_no_order_keeps_input_order(self):
        docs = [{"id": "z"}, {"id": "a"}]
        assert sort_snapshot(docs, None) == docs

    def test_matches_query(self):
        assert matches_query({"n": 1}, "n", "<", 2)
        assert not matches_query({"n": 3}, "n", "<", 2)
        assert not matches_query({}, "n", "<", 2)
        assert not matches_query({"n": "text"}, "n", "<", 2)


class TestCrud:
    """Tests for single-document operations."""

    @pytest.mark.asyncio
    async def test_add_then_get(self, store):
        doc_id = await store.add("companies", {"name": "Acme Corp"})

        doc = await store.get("companies", doc_id)

        assert doc == {"id": doc_id, "name": "Acme Corp"}

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get("companies", "nope") is None

    @pytest.mark.asyncio
    async def test_collections_are_isolated(self, store):
        doc_id = await store.add("companies", {"name": "Acme Corp"})
        assert await store.get("categories", doc_id) is None

    @pytest.mark.asyncio
    async def test_update_merges_fields(self, store):
        doc_id = await store.add("jobs", {"title": "Engineer", "status": "Active"})

        await store.update("jobs", doc_id, {"status": "Inactive"})

        doc = await store.get("jobs", doc_id)
        assert doc["title"] == "Engineer"
        assert doc["status"] == "Inactive"

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, store):
        with pytest.raises(DocumentNotFound):
            await store.update("jobs", "missing", {"status": "Active"})

    @pytest.mark.asyncio
    async def test_delete(self, store):
        doc_id = await store.add("jobs", {"title": "Engineer"})

        await store.delete("jobs", doc_id)

        assert await store.get("jobs", doc_id) is None

    @pytest.mark.asyncio
    async def test_delete_missing_raises(self, store):
        with pytest.raises(DocumentNotFound):
            await store.delete("jobs", "missing")


class TestBatchDelete:
    """Tests for delete_where."""

    @pytest.mark.asyncio
    async def test_deletes_only_matching_documents(self, store):
        old = await store.add("jobs", {"posted_date": "2020-01-01T00:00:00+00:00"})
        new = await store.add("jobs", {"posted_date": "2030-01-01T00:00:00+00:00"})
        undated = await store.add("jobs", {"title": "legacy"})

        deleted = await store.delete_where("jobs", "posted_date", "<", "2025-01-01T00:00:00+00:00")

        assert deleted == 1
        assert await store.get("jobs", old) is None
        assert await store.get("jobs", new) is not None
        assert await store.get("jobs", undated) is not None

    @pytest.mark.asyncio
    async def test_unknown_operator_rejected(self, store):
        with pytest.raises(ValueError):
            await store.delete_where("jobs", "posted_date", "~", "x")


class TestSnapshots:
    """Tests for ordered reads and listeners."""

    @pytest.mark.asyncio
    async def test_list_is_ordered(self, store):
        await store.add("companies", {"name": "Zeta"})
        await store.add("companies", {"name": "Alpha"})

        names = [d["name"] for d in await store.list("companies", order_by="name")]

        assert names == ["Alpha", "Zeta"]

    @pytest.mark.asyncio
    async def test_list_without_order_is_insertion_order(self, store):
        for name in ["c", "a", "b"]:
            await store.add("categories", {"name": name})

        names = [d["name"] for d in await store.list("categories")]

        assert names == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_listener_gets_initial_and_change_snapshots(self, store):
        await store.add("categories", {"name": "Sales"})
        snapshots = []

        unsubscribe = await store.on_snapshot("categories", snapshots.append, order_by="name")
        await store.add("categories", {"name": "Engineering"})

        assert len(snapshots) == 2
        assert [d["name"] for d in snapshots[0]] == ["Sales"]
        assert [d["name"] for d in snapshots[1]] == ["Engineering", "Sales"]
        unsubscribe()

    @pytest.mark.asyncio
    async def test_listener_only_sees_its_collection(self, store):
        snapshots = []
        await store.on_snapshot("categories", snapshots.append)

        await store.add("companies", {"name": "Acme Corp"})

        assert len(snapshots) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_notifications(self, store):
        snapshots = []
        unsubscribe = await store.on_snapshot("jobs", snapshots.append)

        unsubscribe()
        await store.add("jobs", {"title": "Engineer"})

        assert len(snapshots) == 1
        unsubscribe()  # idempotent

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self, store):
        received = []

        def broken(snapshot):
            if len(snapshot):
                raise RuntimeError("listener bug")

        await store.on_snapshot("jobs", broken)
        await store.on_snapshot("jobs", received.append)
        await store.add("jobs", {"title": "Engineer"})

        assert len(received) == 2

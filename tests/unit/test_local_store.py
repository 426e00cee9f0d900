"""
Unit tests for the SQLite document store.
"""

import pytest

from frflow.storage.base import FieldFilter, WriteOp, collection_of, merge_documents
from frflow.storage.local_store import LocalDocumentStore


@pytest.fixture
def store():
    store = LocalDocumentStore(":memory:")
    yield store
    store.close()


class TestPathsAndFilters:
    """Tests for the shared store helpers."""

    def test_collection_of(self):
        assert collection_of("review_items/vocab-1") == "review_items"
        assert collection_of("cache/u1/lessons/l1") == "cache/u1/lessons"

    def test_collection_of_rejects_bare_ids(self):
        with pytest.raises(ValueError):
            collection_of("vocab-1")

    def test_unsupported_operator(self):
        with pytest.raises(ValueError):
            FieldFilter("x", "~=", 1)

    def test_missing_and_incomparable_values_never_match(self):
        assert FieldFilter("next_review", "<=", 10).matches({}) is False
        assert FieldFilter("next_review", "<=", 10).matches({"next_review": None}) is False
        assert FieldFilter("next_review", "<=", 10).matches({"next_review": "soon"}) is False
        assert FieldFilter("next_review", "<=", 10).matches({"next_review": True}) is False
        assert FieldFilter("next_review", "<=", 10).matches({"next_review": 10}) is True

    def test_merge_documents_is_deep(self):
        merged = merge_documents({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}, "c": 4})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}


class TestLocalDocumentStore:
    """Tests for LocalDocumentStore CRUD and queries."""

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("lessons/nope") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, store):
        await store.set("lessons/l1", {"id": "l1", "topic": "café"})
        assert await store.get("lessons/l1") == {"id": "l1", "topic": "café"}

    @pytest.mark.asyncio
    async def test_overwrite_replaces(self, store):
        await store.set("review_items/a", {"id": "a", "srs_level": 3, "content": {"x": 1}})
        await store.set("review_items/a", {"id": "a", "srs_level": 0})
        assert await store.get("review_items/a") == {"id": "a", "srs_level": 0}

    @pytest.mark.asyncio
    async def test_merge_keeps_other_fields(self, store):
        await store.set("review_items/a", {"id": "a", "srs_level": 3, "content": {"x": 1}})
        await store.set("review_items/a", {"srs_level": 4}, merge=True)
        assert await store.get("review_items/a") == {"id": "a", "srs_level": 4, "content": {"x": 1}}

    @pytest.mark.asyncio
    async def test_query_filters_and_collection_scope(self, store):
        await store.set("review_items/a", {"id": "a", "type": "vocab", "next_review": 5})
        await store.set("review_items/b", {"id": "b", "type": "grammar", "next_review": 5})
        await store.set("review_items/c", {"id": "c", "type": "vocab", "next_review": 50})
        await store.set("cache/u1/review_items/d", {"id": "d", "type": "vocab", "next_review": 1})

        results = await store.query(
            "review_items",
            [FieldFilter("type", "==", "vocab"), FieldFilter("next_review", "<=", 10)],
        )
        assert [doc["id"] for doc in results] == ["a"]
        assert len(await store.query("review_items")) == 3

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, store):
        await store.set("review_items/a", {"id": "a"})
        await store.delete("review_items/a")
        await store.delete("review_items/a")
        assert await store.get("review_items/a") is None

    @pytest.mark.asyncio
    async def test_batch_write_applies_in_order(self, store):
        await store.batch_write([
            WriteOp("review_items/a", {"id": "a", "srs_level": 1}),
            WriteOp("review_items/a", {"next_review": 9}, merge=True),
            WriteOp("lessons/l1", {"id": "l1"}),
        ])
        assert await store.get("review_items/a") == {"id": "a", "srs_level": 1, "next_review": 9}
        assert store.count() == 2
        assert store.count("lessons") == 1

    @pytest.mark.asyncio
    async def test_undecodable_rows_are_skipped(self, store):
        await store.set("review_items/a", {"id": "a"})
        store.conn.execute(
            "INSERT INTO documents (path, collection, body) VALUES (?, ?, ?)",
            ("review_items/bad", "review_items", "{not json"),
        )
        store.conn.commit()

        assert await store.get("review_items/bad") is None
        assert [doc["id"] for doc in await store.query("review_items")] == ["a"]

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "local.db"
        first = LocalDocumentStore(path)
        await first.set("lessons/l1", {"id": "l1"})
        first.close()

        second = LocalDocumentStore(path)
        assert await second.get("lessons/l1") == {"id": "l1"}
        second.close()

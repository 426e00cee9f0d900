"""
Integration Tests for the Review Flow.

Drives the learner path against a real SQLite file:
1. A lesson is archived and seeds the notebook
2. The due queue serves the new items
3. Reviews move items along the ladder and out of the queue
4. State survives reopening the store
"""

import pytest

from frflow.archive import ContentArchive
from frflow.delivery.scheduler import DAY_MS
from frflow.storage import LocalDocumentStore, StorageAdapter

pytestmark = pytest.mark.integration


def open_archive(db_path, clock):
    store = LocalDocumentStore(db_path)
    return store, ContentArchive(StorageAdapter(store), clock=clock)


class TestReviewFlow:
    """Archive -> due -> review -> reopen."""

    @pytest.mark.asyncio
    async def test_full_cycle(self, tmp_path, clock, sample_lesson):
        db_path = tmp_path / "frflow.db"
        store, archive = open_archive(db_path, clock)

        outcome = await archive.archive_lesson(sample_lesson)
        await archive.add_grammar(sample_lesson.group_id, sample_lesson.id, sample_lesson.grammar)
        await archive.add_text(sample_lesson.group_id, sample_lesson.id, sample_lesson.texts.essay.content)
        assert outcome.added == 2

        queue = await archive.due_queue()
        assert len(queue) == 4

        for item in queue:
            await archive.record_review(item, "good")
        assert await archive.due_queue() == []
        store.close()

        clock.advance(DAY_MS)
        store, archive = open_archive(db_path, clock)

        queue = await archive.due_queue()
        assert len(queue) == 4
        assert {item.strength_level for item in queue} == {1}

        await archive.record_review(queue[0], "easy")
        clock.advance(DAY_MS)
        assert len(await archive.due_queue()) == 3

        groups = {g.group_id: g.count for g in await archive.list_groups()}
        assert groups == {sample_lesson.group_id: 4}
        store.close()

    @pytest.mark.asyncio
    async def test_regenerated_lesson_keeps_progress(self, tmp_path, clock, sample_lesson):
        store, archive = open_archive(tmp_path / "frflow.db", clock)

        await archive.archive_lesson(sample_lesson)
        for item in await archive.due_queue():
            await archive.record_review(item, "easy")

        regenerated = sample_lesson.model_copy(update={"id": "lesson-002"})
        outcome = await archive.archive_lesson(regenerated)

        assert (outcome.added, outcome.skipped) == (0, 2)
        assert all(item.strength_level == 2 for item in await archive.list_items())
        assert len(await archive.list_lessons(sample_lesson.group_id)) == 2
        store.close()

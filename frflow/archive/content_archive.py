"""
Content Archive: the learner's durable corpus of lessons and review items.

Merges generated lesson content into the corpus without duplication and
serves the listing and due-queue views the review flow needs.

Merge policies:
- vocabulary: additive-skip. An entry whose dedup key already exists in the
  group (stored, or earlier in the same batch) is skipped and counted.
- grammar/text: overwrite-upsert. The id encodes the content, so a
  regenerated entry replaces the stored document in place.

All derived items are computed before the first write. Lesson archival
writes the review items before the lesson document, so a batch that stops
part-way on the local store leaves no lesson behind and re-running the same
call completes it.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Callable

from loguru import logger
from pydantic import ValidationError

from frflow.core.identity import grammar_raw_key, stable_id, text_raw_key, vocab_dedup_key
from frflow.core.models import (
    GrammarEntry,
    GroupSummary,
    ItemKind,
    Lesson,
    ReviewItem,
    TextLine,
    VocabEntry,
    now_ms,
)
from frflow.delivery.scheduler import LadderScheduler, ReviewQuality
from frflow.storage.base import DocumentStore, FieldFilter, WriteOp, join_path

LESSONS = "lessons"
REVIEW_ITEMS = "review_items"


@dataclass
class MergeOutcome:
    """Result of merging entries into the notebook."""

    added: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class ArchiveOutcome:
    """Result of archiving a lesson."""

    lesson_stored: bool
    added: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ContentArchive:
    """
    Lesson and review item collections on top of a document store.

    Args:
        storage: Backend (normally a StorageAdapter)
        scheduler: Review scheduler (defaults to the standard ladder)
        clock: Millisecond clock, injectable for tests
    """

    def __init__(
        self,
        storage: DocumentStore,
        scheduler: LadderScheduler | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.storage = storage
        self.scheduler = scheduler or LadderScheduler()
        self.clock = clock

    # =========================================================================
    # Lessons
    # =========================================================================

    async def archive_lesson(self, lesson: Lesson) -> ArchiveOutcome:
        """
        Store a lesson and seed one vocabulary item per distinct word.

        Idempotent: a lesson whose id is already stored is left untouched.
        The lesson and its items go out in a single batch write.
        """
        lesson_path = join_path(LESSONS, lesson.id)
        if await self.storage.get(lesson_path) is not None:
            logger.debug(f"Lesson {lesson.id} already archived")
            return ArchiveOutcome(lesson_stored=False)

        now = self.clock()
        existing = await self._existing_dedup_keys(lesson.group_id) if lesson.vocabulary else set()
        items, skipped = self._plan_vocabulary(
            lesson.group_id, lesson.id, lesson.vocabulary, existing, now
        )

        writes = [self._item_write(item, merge=True) for item in items]
        writes.append(WriteOp(lesson_path, lesson.to_document()))
        await self.storage.batch_write(writes)

        logger.info(
            f"Archived lesson {lesson.id} in {lesson.group_id}: "
            f"{len(items)} vocabulary items added, {skipped} skipped"
        )
        return ArchiveOutcome(lesson_stored=True, added=len(items), skipped=skipped)

    async def get_lesson(self, lesson_id: str) -> Lesson | None:
        document = await self.storage.get(join_path(LESSONS, lesson_id))
        if document is None:
            return None
        return Lesson.from_document(document)

    async def list_lessons(self, group_id: str | None = None) -> list[Lesson]:
        """Archived lessons, newest first."""
        filters = [FieldFilter("groupId", "==", group_id)] if group_id else None
        lessons = []
        for document in await self.storage.query(LESSONS, filters):
            try:
                lessons.append(Lesson.from_document(document))
            except ValidationError as e:
                logger.warning(f"Skipping malformed lesson {document.get('id')}: {e}")
        lessons.sort(key=lambda lesson: lesson.created_at, reverse=True)
        return lessons

    # =========================================================================
    # Notebook merges
    # =========================================================================

    async def add_vocabulary(
        self,
        group_id: str,
        source_lesson_id: str | None,
        entries: list[VocabEntry],
    ) -> MergeOutcome:
        """
        Add vocabulary entries, skipping words already in the group.

        Returns:
            MergeOutcome with added and skipped counts
        """
        if not entries:
            return MergeOutcome()

        existing = await self._existing_dedup_keys(group_id)
        items, skipped = self._plan_vocabulary(
            group_id, source_lesson_id, entries, existing, self.clock()
        )
        if items:
            await self.storage.batch_write([self._item_write(item, merge=True) for item in items])

        logger.debug(f"Vocabulary merge into {group_id}: {len(items)} added, {skipped} skipped")
        return MergeOutcome(added=len(items), skipped=skipped)

    async def add_grammar(
        self,
        group_id: str,
        source_lesson_id: str | None,
        entries: list[GrammarEntry],
    ) -> MergeOutcome:
        """Upsert grammar points; a stored point with the same content is replaced."""
        if not entries:
            return MergeOutcome()

        now = self.clock()
        items = [
            self._new_item(group_id, source_lesson_id, ItemKind.GRAMMAR, grammar_raw_key(entry), entry, now)
            for entry in entries
        ]
        await self.storage.batch_write([self._item_write(item, merge=False) for item in items])
        return MergeOutcome(added=len(items))

    async def add_text(
        self,
        group_id: str,
        source_lesson_id: str | None,
        lines: list[TextLine],
    ) -> MergeOutcome:
        """Upsert dialogue lines or essay sentences, overwrite semantics."""
        if not lines:
            return MergeOutcome()

        now = self.clock()
        items = [
            self._new_item(group_id, source_lesson_id, ItemKind.TEXT, text_raw_key(line), line, now)
            for line in lines
        ]
        await self.storage.batch_write([self._item_write(item, merge=False) for item in items])
        return MergeOutcome(added=len(items))

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_items(
        self,
        kind: ItemKind | str | None = None,
        group_id: str | None = None,
    ) -> list[ReviewItem]:
        """All matching items, newest first. Unschedulable items are included."""
        items = await self._load_items(self._filters(kind, group_id))
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items

    async def due_queue(
        self,
        kind: ItemKind | str | None = None,
        group_id: str | None = None,
    ) -> list[ReviewItem]:
        """Items whose review time has elapsed, most overdue first."""
        now = self.clock()
        filters = self._filters(kind, group_id)
        filters.append(FieldFilter("next_review", "<=", now))

        items = [item for item in await self._load_items(filters) if item.is_due(now)]
        items.sort(key=lambda item: item.next_review_at)
        return items

    async def list_groups(self) -> list[GroupSummary]:
        """Review item count per lesson group."""
        counts = Counter(
            str(document.get("groupId") or "")
            for document in await self.storage.query(REVIEW_ITEMS)
            if isinstance(document, dict)
        )
        return [GroupSummary(group_id, count) for group_id, count in sorted(counts.items())]

    # =========================================================================
    # Mutations
    # =========================================================================

    async def record_review(self, item: ReviewItem, quality: ReviewQuality | str) -> ReviewItem:
        """Apply a review grade and persist the new scheduling state."""
        updated = self.scheduler.schedule(item, quality, now=self.clock())
        await self.storage.set(join_path(REVIEW_ITEMS, item.id), updated.to_document(), merge=True)
        logger.debug(
            f"Reviewed {item.id} ({quality}): level {item.strength_level} -> {updated.strength_level}"
        )
        return updated

    async def delete_item(self, item_id: str) -> None:
        """Remove an item; deleting a missing id is a no-op."""
        await self.storage.delete(join_path(REVIEW_ITEMS, item_id))

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _filters(kind: ItemKind | str | None, group_id: str | None) -> list[FieldFilter]:
        filters = []
        if kind is not None:
            filters.append(FieldFilter("type", "==", ItemKind.parse(kind).value))
        if group_id is not None:
            filters.append(FieldFilter("groupId", "==", group_id))
        return filters

    async def _load_items(self, filters: list[FieldFilter]) -> list[ReviewItem]:
        items = []
        for document in await self.storage.query(REVIEW_ITEMS, filters):
            try:
                items.append(ReviewItem.from_document(document))
            except ValueError as e:
                doc_id = document.get("id") if isinstance(document, dict) else None
                logger.warning(f"Skipping malformed review item {doc_id}: {e}")
        return items

    async def _existing_dedup_keys(self, group_id: str) -> set[str]:
        documents = await self.storage.query(
            REVIEW_ITEMS,
            [
                FieldFilter("groupId", "==", group_id),
                FieldFilter("type", "==", ItemKind.VOCABULARY.value),
            ],
        )
        return {doc["dedupKey"] for doc in documents if doc.get("dedupKey") is not None}

    def _plan_vocabulary(
        self,
        group_id: str,
        source_lesson_id: str | None,
        entries: list[VocabEntry],
        existing: set[str],
        now: int,
    ) -> tuple[list[ReviewItem], int]:
        seen = set(existing)
        items = []
        for entry in entries:
            key = vocab_dedup_key(entry)
            if key in seen:
                continue
            seen.add(key)
            item = self._new_item(group_id, source_lesson_id, ItemKind.VOCABULARY, key, entry, now)
            item.dedup_key = key
            items.append(item)
        return items, len(entries) - len(items)

    @staticmethod
    def _new_item(
        group_id: str,
        source_lesson_id: str | None,
        kind: ItemKind,
        raw_key: str,
        payload: VocabEntry | GrammarEntry | TextLine,
        now: int,
    ) -> ReviewItem:
        return ReviewItem(
            id=stable_id(group_id, kind, raw_key),
            group_id=group_id,
            kind=kind,
            payload=payload,
            created_at=now,
            strength_level=0,
            next_review_at=now,
            source_lesson_id=source_lesson_id,
        )

    @staticmethod
    def _item_write(item: ReviewItem, merge: bool) -> WriteOp:
        return WriteOp(join_path(REVIEW_ITEMS, item.id), item.to_document(), merge=merge)

"""
Domain models for lessons, review items and user preferences.

Content produced by the generation provider is loosely structured JSON, so
the lesson side is modelled with lenient pydantic models (missing fields get
defaults, bare strings are promoted to phonetic segments). Review items are
plain dataclasses with explicit document round-tripping, mirroring how the
scheduler state is stored.

Persisted field names follow the stored document shape:
    id, groupId, courseId, type, dedupKey, content, createdAt,
    srs_level, next_review
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


# =============================================================================
# Enums
# =============================================================================


class CEFRLevel(str, Enum):
    """Proficiency levels a lesson can target."""

    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"


class ItemKind(str, Enum):
    """Discriminator for review item payloads (stored as the `type` field)."""

    VOCABULARY = "vocab"
    GRAMMAR = "grammar"
    TEXT = "text"

    @classmethod
    def parse(cls, value: str | ItemKind) -> ItemKind:
        """Accept stored values as well as the long spelling ("vocabulary")."""
        if isinstance(value, ItemKind):
            return value
        normalized = str(value).strip().lower()
        if normalized == "vocabulary":
            return cls.VOCABULARY
        return cls(normalized)


# =============================================================================
# Lesson Content
# =============================================================================


def _coerce_segments(value: Any) -> Any:
    # Providers sometimes return a plain string where segments are expected
    if value is None:
        return []
    if isinstance(value, str):
        return [{"text": value}]
    if isinstance(value, dict):
        return [value]
    return value


class PhoneticSegment(BaseModel):
    """One fragment of French text with an optional pronunciation hint."""

    model_config = ConfigDict(extra="ignore")

    text: str = ""
    phonetic: str | None = None


Segments = Annotated[list[PhoneticSegment], BeforeValidator(_coerce_segments)]


class VocabExample(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: Segments = Field(default_factory=list)
    translation: str = ""
    grammar_point: str = ""


class VocabEntry(BaseModel):
    """A vocabulary word with gender, meaning and an example sentence."""

    model_config = ConfigDict(extra="ignore")

    word: Segments = Field(default_factory=list)
    gender: str = "none"  # m | f | none
    plural: str | None = None
    meaning: str = ""
    grammar_tag: str = ""
    example: VocabExample = Field(default_factory=VocabExample)


class GrammarExample(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: Segments = Field(default_factory=list)
    translation: str = ""


class GrammarEntry(BaseModel):
    """A grammar point with explanation and one example."""

    model_config = ConfigDict(extra="ignore")

    point: str = ""
    explanation: str = ""
    example: GrammarExample = Field(default_factory=GrammarExample)


class TextLine(BaseModel):
    """A dialogue line or essay sentence."""

    model_config = ConfigDict(extra="ignore")

    role: str | None = None
    name: str | None = None
    text: Segments = Field(default_factory=list)
    translation: str = ""


class Essay(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    content: list[TextLine] = Field(default_factory=list)


class LessonTexts(BaseModel):
    model_config = ConfigDict(extra="ignore")

    dialogue: list[TextLine] = Field(default_factory=list)
    essay: Essay = Field(default_factory=Essay)


class Lesson(BaseModel):
    """
    One generated study session.

    Owned by the LessonGroup identified by `group_id`. Lessons are immutable
    once archived; a regenerated lesson is a new Lesson with a new id.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    group_id: str = Field(alias="groupId")
    topic: str = ""
    level: CEFRLevel = CEFRLevel.A1
    title: Segments = Field(default_factory=list)
    vocabulary: list[VocabEntry] = Field(default_factory=list)
    grammar: list[GrammarEntry] = Field(default_factory=list)
    texts: LessonTexts = Field(default_factory=LessonTexts)
    created_at: int = Field(default=0, alias="createdAt")

    def to_document(self) -> dict[str, Any]:
        """Serialize to the stored JSON shape."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Lesson:
        return cls.model_validate(data)


# =============================================================================
# Lesson Groups
# =============================================================================


def normalize_topic(topic: str) -> str:
    """
    Normalize a free-form topic for use in a group key.

    Trims, lower-cases, collapses whitespace runs, then drops every character
    that is neither a letter, a digit nor whitespace.
    """
    collapsed = " ".join((topic or "").strip().lower().split())
    return "".join(ch for ch in collapsed if ch.isalnum() or ch.isspace())


def make_group_id(topic: str, level: CEFRLevel | str) -> str:
    """Composite (topic, level) key of a LessonGroup."""
    level_value = level.value if isinstance(level, CEFRLevel) else str(level)
    return f"{normalize_topic(topic)}__{level_value}"


@dataclass
class GroupSummary:
    """Review item count of one lesson group."""

    group_id: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"groupId": self.group_id, "count": self.count}


# =============================================================================
# Review Items
# =============================================================================

ReviewPayload = Union[VocabEntry, GrammarEntry, TextLine]

PAYLOAD_MODELS: dict[ItemKind, type[BaseModel]] = {
    ItemKind.VOCABULARY: VocabEntry,
    ItemKind.GRAMMAR: GrammarEntry,
    ItemKind.TEXT: TextLine,
}


def _parse_int(value: Any) -> int | None:
    """Parse a stored level or millisecond timestamp; None when unusable."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            return None
    return None


@dataclass
class ReviewItem:
    """
    The unit the scheduler operates on.

    `next_review_at` is None only for documents whose scheduling fields could
    not be parsed. Such items are listed but never returned in the due queue.
    """

    id: str
    group_id: str
    kind: ItemKind
    payload: ReviewPayload
    created_at: int
    strength_level: int = 0
    next_review_at: int | None = None
    source_lesson_id: str | None = None
    dedup_key: str | None = None

    @property
    def is_schedulable(self) -> bool:
        return self.next_review_at is not None

    def is_due(self, now: int) -> bool:
        """Check whether the item's review time has elapsed."""
        return self.next_review_at is not None and self.next_review_at <= now

    def to_document(self) -> dict[str, Any]:
        """Convert to the stored document shape."""
        doc: dict[str, Any] = {
            "id": self.id,
            "groupId": self.group_id,
            "type": self.kind.value,
            "content": self.payload.model_dump(mode="json"),
            "createdAt": self.created_at,
            "srs_level": self.strength_level,
            "next_review": self.next_review_at,
        }
        if self.source_lesson_id is not None:
            doc["courseId"] = self.source_lesson_id
        if self.dedup_key is not None:
            doc["dedupKey"] = self.dedup_key
        return doc

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> ReviewItem:
        """
        Build a ReviewItem from a stored document.

        Raises:
            ValueError: if the document has no id, an unknown type or a
                payload that cannot be validated. Unparseable scheduling
                fields do not raise.
        """
        if not isinstance(data, dict) or not data.get("id"):
            raise ValueError("review item document has no id")

        kind = ItemKind.parse(data.get("type", ""))
        payload = PAYLOAD_MODELS[kind].model_validate(data.get("content") or {})

        level = _parse_int(data.get("srs_level"))
        next_review = _parse_int(data.get("next_review"))
        if level is None:
            # Level and due time are only meaningful together
            next_review = None

        return cls(
            id=str(data["id"]),
            group_id=str(data.get("groupId") or ""),
            kind=kind,
            payload=payload,
            created_at=_parse_int(data.get("createdAt")) or 0,
            strength_level=level if level is not None else 0,
            next_review_at=next_review,
            source_lesson_id=data.get("courseId"),
            dedup_key=data.get("dedupKey"),
        )


# =============================================================================
# User Preferences
# =============================================================================


class UserSettings(BaseModel):
    """Per-user preferences synced through the storage adapter."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    gemini_key: str = Field(default="", alias="geminiKey")
    openai_key: str = Field(default="", alias="openaiKey")
    google_tts_key: str = Field(default="", alias="googleTTSKey")
    selected_model: str = Field(default="gemini", alias="selectedModel")  # gemini | openai
    tts_provider: str = Field(default="browser", alias="ttsProvider")
    user_name: str = Field(default="Guest", alias="userName")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

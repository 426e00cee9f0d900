"""Core domain: models, identity, storage modes and exceptions."""

from .exceptions import BackendUnavailableError, FrflowError, GenerationError, StorageError
from .identity import canonical_surface, fnv1a_64, stable_id, vocab_dedup_key
from .models import (
    CEFRLevel,
    GrammarEntry,
    GroupSummary,
    ItemKind,
    Lesson,
    ReviewItem,
    TextLine,
    UserSettings,
    VocabEntry,
    make_group_id,
    normalize_topic,
)
from .modes import CloudIdentity, StorageMode, identity_from_settings, resolve_mode

__all__ = [
    # Models
    "CEFRLevel",
    "ItemKind",
    "Lesson",
    "VocabEntry",
    "GrammarEntry",
    "TextLine",
    "ReviewItem",
    "GroupSummary",
    "UserSettings",
    "make_group_id",
    "normalize_topic",
    # Identity
    "fnv1a_64",
    "stable_id",
    "vocab_dedup_key",
    "canonical_surface",
    # Modes
    "StorageMode",
    "CloudIdentity",
    "identity_from_settings",
    "resolve_mode",
    # Errors
    "FrflowError",
    "GenerationError",
    "StorageError",
    "BackendUnavailableError",
]

"""
Identity and deduplication for review items.

Ids are derived by hashing the logical content of an item instead of being
random, so archiving the same content twice maps onto the same document and
overwrites it in place.

The hash is 64-bit FNV-1a over the UTF-8 bytes of "{group}::{kind}::{key}".
It is stable across processes and platforms. It is not a security boundary.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .models import GrammarEntry, ItemKind, PhoneticSegment, TextLine, VocabEntry

FNV64_OFFSET_BASIS = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
_MASK_64 = 0xFFFFFFFFFFFFFFFF


def fnv1a_64(data: str) -> str:
    """Return the 64-bit FNV-1a hash of `data` as 16 lower-case hex digits."""
    h = FNV64_OFFSET_BASIS
    for byte in data.encode("utf-8"):
        h ^= byte
        h = (h * FNV64_PRIME) & _MASK_64
    return f"{h:016x}"


def canonical_surface(content: Any) -> str:
    """
    Flatten phonetic segments into a plain comparison string.

    Pronunciation annotations are ignored. A plain string is returned as is,
    and anything that is not a sequence of segments yields "".
    """
    if isinstance(content, str):
        return content
    if not isinstance(content, Iterable) or isinstance(content, (bytes, dict)):
        return ""

    parts: list[str] = []
    for segment in content:
        if isinstance(segment, PhoneticSegment):
            parts.append(segment.text or "")
        elif isinstance(segment, dict):
            parts.append(str(segment.get("text") or ""))
        elif isinstance(segment, str):
            parts.append(segment)
    return "".join(parts)


def vocab_dedup_key(entry: VocabEntry) -> str:
    """Canonical surface of the word, trimmed and lower-cased."""
    return canonical_surface(entry.word).strip().lower()


def grammar_raw_key(entry: GrammarEntry) -> str:
    return f"{entry.point}__{canonical_surface(entry.example.text)}"


def text_raw_key(line: TextLine) -> str:
    return f"{canonical_surface(line.text)}__{line.translation or ''}"


def stable_id(group_id: str, kind: ItemKind | str, raw_key: str) -> str:
    """
    Deterministic id for a review item.

    Args:
        group_id: Owning lesson group
        kind: Item kind (prefixes the id for readability)
        raw_key: Dedup key for vocabulary, content key for grammar/text

    Returns:
        "{kind}-{16 hex digits}"
    """
    kind_value = kind.value if isinstance(kind, ItemKind) else str(kind)
    return f"{kind_value}-{fnv1a_64(f'{group_id}::{kind_value}::{raw_key}')}"

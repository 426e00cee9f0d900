"""
Document store contract shared by the local and remote backends.

Paths are slash-separated, the last segment being the document id and the
rest the collection ("review_items/vocab-1a2b..." lives in "review_items").
Queries take a list of field filters combined with AND.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Any, Callable, Protocol

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def collection_of(path: str) -> str:
    """Collection part of a document path."""
    collection, _, doc_id = path.strip("/").rpartition("/")
    if not collection or not doc_id:
        raise ValueError(f"Not a document path: {path!r}")
    return collection


def join_path(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p)


@dataclass(frozen=True)
class FieldFilter:
    """A single `field op value` predicate on a top-level document field."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def matches(self, document: dict[str, Any]) -> bool:
        """
        Evaluate against a document.

        Missing fields and values that cannot be compared never match.
        """
        if self.field not in document:
            return False
        candidate = document[self.field]
        if self.op in ("<", "<=", ">", ">="):
            # bool is an int subclass but never a valid ordered value here
            if isinstance(candidate, bool) or candidate is None:
                return False
        try:
            return bool(_OPERATORS[self.op](candidate, self.value))
        except TypeError:
            return False

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "op": self.op, "value": self.value}


def merge_documents(existing: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    """Merge-write semantics: nested maps are merged, everything else replaced."""
    merged = dict(existing)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_documents(merged[key], value)
        else:
            merged[key] = value
    return merged


def matches_all(document: dict[str, Any], filters: list[FieldFilter] | None) -> bool:
    return all(f.matches(document) for f in filters or [])


@dataclass
class WriteOp:
    """One write in a batch."""

    path: str
    document: dict[str, Any]
    merge: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "document": self.document, "merge": self.merge}


class DocumentStore(Protocol):
    """Narrow CRUD + query contract the archive depends on."""

    async def get(self, path: str) -> dict[str, Any] | None: ...

    async def set(self, path: str, document: dict[str, Any], merge: bool = False) -> None: ...

    async def query(
        self, collection: str, filters: list[FieldFilter] | None = None
    ) -> list[dict[str, Any]]: ...

    async def delete(self, path: str) -> None: ...

    async def batch_write(self, writes: list[WriteOp]) -> None: ...

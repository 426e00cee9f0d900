"""
SQLite Document Store for frflow.

Device-scoped persistence used when no cloud identity is present, and as
the best-effort cache of remote reads when one is.

Database location: ~/.frflow/local.db

The store has no multi-write atomicity: a batch is applied write by write
in order, each committed on its own. Archival relies on deterministic ids
so a partially applied batch can simply be re-run.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

from loguru import logger

from .base import FieldFilter, WriteOp, collection_of, matches_all, merge_documents


class LocalDocumentStore:
    """
    SQLite-backed document store.

    Documents are stored as JSON text keyed by their full path, with the
    collection denormalized into its own indexed column for queries.
    """

    DEFAULT_DB_PATH = Path.home() / ".frflow" / "local.db"

    def __init__(self, db_path: Path | str | None = None):
        """
        Initialize the local store.

        Args:
            db_path: Custom database path (defaults to ~/.frflow/local.db)
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._init_schema()

        logger.info(f"LocalDocumentStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self) -> None:
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                path TEXT PRIMARY KEY,
                collection TEXT NOT NULL,
                body TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_collection
            ON documents(collection)
        """)

        self.conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # =========================================================================
    # Row helpers
    # =========================================================================

    def _read(self, path: str) -> dict[str, Any] | None:
        cursor = self.conn.cursor()
        cursor.execute("SELECT body FROM documents WHERE path = ?", (path,))
        row = cursor.fetchone()
        if row is None:
            return None
        return self._decode(path, row["body"])

    @staticmethod
    def _decode(path: str, body: str) -> dict[str, Any] | None:
        try:
            document = json.loads(body)
        except json.JSONDecodeError:
            logger.warning(f"Skipping undecodable local document {path}")
            return None
        return document if isinstance(document, dict) else None

    def _write(self, path: str, document: dict[str, Any], merge: bool) -> None:
        path = path.strip("/")
        if merge:
            existing = self._read(path)
            if existing is not None:
                document = merge_documents(existing, document)

        self.conn.execute(
            """
            INSERT INTO documents (path, collection, body, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(path) DO UPDATE SET
                body = excluded.body,
                updated_at = excluded.updated_at
        """,
            (path, collection_of(path), json.dumps(document, ensure_ascii=False)),
        )
        self.conn.commit()

    # =========================================================================
    # DocumentStore
    # =========================================================================

    async def get(self, path: str) -> dict[str, Any] | None:
        return self._read(path.strip("/"))

    async def set(self, path: str, document: dict[str, Any], merge: bool = False) -> None:
        self._write(path, document, merge)

    async def query(
        self, collection: str, filters: list[FieldFilter] | None = None
    ) -> list[dict[str, Any]]:
        """
        Return documents of a collection matching every filter.

        Args:
            collection: Collection path (e.g. "review_items")
            filters: Field filters, AND-combined

        Returns:
            Matching documents in path order
        """
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT path, body FROM documents WHERE collection = ? ORDER BY path",
            (collection.strip("/"),),
        )

        results = []
        for row in cursor.fetchall():
            document = self._decode(row["path"], row["body"])
            if document is not None and matches_all(document, filters):
                results.append(document)
        return results

    async def delete(self, path: str) -> None:
        self.conn.execute("DELETE FROM documents WHERE path = ?", (path.strip("/"),))
        self.conn.commit()

    async def batch_write(self, writes: list[WriteOp]) -> None:
        for write in writes:
            self._write(write.path, write.document, write.merge)
        logger.debug(f"Applied {len(writes)} local writes")

    # =========================================================================
    # Maintenance
    # =========================================================================

    def count(self, collection: str | None = None) -> int:
        """Number of stored documents, optionally within one collection."""
        cursor = self.conn.cursor()
        if collection is None:
            cursor.execute("SELECT COUNT(*) AS n FROM documents")
        else:
            cursor.execute(
                "SELECT COUNT(*) AS n FROM documents WHERE collection = ?",
                (collection.strip("/"),),
            )
        return cursor.fetchone()["n"]

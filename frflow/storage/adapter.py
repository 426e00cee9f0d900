"""
Storage Adapter: one logical backend over two physical ones.

Routing is decided once, when the adapter is built:
- no remote store -> every operation hits the local device store
- remote store    -> every operation hits the remote store; reads are also
                     mirrored into the local store under cache/{user_id}/
                     as a best-effort cache

Remote failures propagate for corpus reads and writes. Only settings sync
and cache mirroring swallow (and log) them.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, Any

from loguru import logger

from frflow.core.exceptions import StorageError
from frflow.core.modes import CloudIdentity, StorageMode
from frflow.core.models import UserSettings

from .base import DocumentStore, FieldFilter, WriteOp, join_path

if TYPE_CHECKING:
    from config import Settings

SETTINGS_PATH = "settings/general"
CACHE_ROOT = "cache"


class StorageAdapter:
    """
    Routes document operations to the backend selected at session start.

    Args:
        local: Device-scoped store (always present)
        remote: Identity-scoped remote store, or None when signed out
        user_id: Identity of the remote store, namespaces the local cache
    """

    def __init__(
        self,
        local: DocumentStore,
        remote: DocumentStore | None = None,
        user_id: str | None = None,
    ):
        if remote is not None and not user_id:
            raise ValueError("A remote store requires the user_id it is scoped to")
        self.local = local
        self.remote = remote
        self.user_id = user_id if remote is not None else None

    @classmethod
    def for_session(
        cls,
        settings: Settings,
        identity: CloudIdentity | None = None,
    ) -> StorageAdapter:
        """Build the adapter for a session from configuration and identity."""
        from .local_store import LocalDocumentStore
        from .remote_store import RemoteDocumentStore

        local = LocalDocumentStore(settings.local_db_path)
        if identity is None:
            logger.debug("Session has no cloud identity, using local store")
            return cls(local)

        remote = RemoteDocumentStore(
            settings.remote_base_url,
            identity,
            timeout_seconds=settings.remote_timeout_seconds,
        )
        logger.debug(f"Session signed in as {identity.user_id}, using remote store")
        return cls(local, remote, user_id=identity.user_id)

    @property
    def mode(self) -> StorageMode:
        return StorageMode.SYNCED if self.remote is not None else StorageMode.LOCAL

    @property
    def active(self) -> DocumentStore:
        return self.remote if self.remote is not None else self.local

    async def close(self) -> None:
        if self.remote is not None and hasattr(self.remote, "close"):
            await self.remote.close()
        if hasattr(self.local, "close"):
            self.local.close()

    # =========================================================================
    # Cache mirroring
    # =========================================================================

    def _cache_path(self, path: str) -> str:
        return join_path(CACHE_ROOT, self.user_id or "", path)

    async def _mirror(self, writes: list[WriteOp]) -> None:
        if not writes:
            return
        try:
            await self.local.batch_write(writes)
        except (StorageError, sqlite3.Error, OSError, ValueError) as e:
            logger.warning(f"Could not mirror {len(writes)} remote documents locally: {e}")

    # =========================================================================
    # DocumentStore
    # =========================================================================

    async def get(self, path: str) -> dict[str, Any] | None:
        document = await self.active.get(path)
        if self.remote is not None and document is not None:
            await self._mirror([WriteOp(self._cache_path(path), document)])
        return document

    async def set(self, path: str, document: dict[str, Any], merge: bool = False) -> None:
        await self.active.set(path, document, merge=merge)

    async def query(
        self, collection: str, filters: list[FieldFilter] | None = None
    ) -> list[dict[str, Any]]:
        documents = await self.active.query(collection, filters)
        if self.remote is not None:
            await self._mirror([
                WriteOp(self._cache_path(join_path(collection, str(doc["id"]))), doc)
                for doc in documents
                if isinstance(doc, dict) and doc.get("id")
            ])
        return documents

    async def delete(self, path: str) -> None:
        await self.active.delete(path)

    async def batch_write(self, writes: list[WriteOp]) -> None:
        await self.active.batch_write(writes)

    # =========================================================================
    # Settings
    # =========================================================================

    async def load_settings(self) -> UserSettings:
        """
        Load user settings.

        Starts from the device value; when signed in, the remote document is
        overlaid and written back locally. Remote failures keep the local value.
        """
        local_doc = await self.local.get(SETTINGS_PATH) or {}
        settings = UserSettings.model_validate(local_doc)

        if self.remote is None:
            return settings

        try:
            remote_doc = await self.remote.get(SETTINGS_PATH)
        except StorageError as e:
            logger.warning(f"Settings sync fetch failed, using local settings: {e}")
            return settings

        if remote_doc:
            settings = UserSettings.model_validate({**settings.to_document(), **remote_doc})
            await self.local.set(SETTINGS_PATH, settings.to_document())
        return settings

    async def save_settings(self, settings: UserSettings) -> None:
        """Save settings locally, then best-effort to the remote store."""
        document = settings.to_document()
        await self.local.set(SETTINGS_PATH, document)

        if self.remote is None:
            return
        try:
            await self.remote.set(SETTINGS_PATH, document)
        except StorageError as e:
            logger.warning(f"Settings cloud save failed: {e}")

"""
Document storage backends.

Components:
- LocalDocumentStore: SQLite, device scoped
- RemoteDocumentStore: HTTP document API, identity scoped
- StorageAdapter: routes to one of them for the whole session
"""

from .adapter import StorageAdapter
from .base import DocumentStore, FieldFilter, WriteOp
from .local_store import LocalDocumentStore
from .remote_store import RemoteDocumentStore

__all__ = [
    "DocumentStore",
    "FieldFilter",
    "WriteOp",
    "LocalDocumentStore",
    "RemoteDocumentStore",
    "StorageAdapter",
]

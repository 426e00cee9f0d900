"""
Exception hierarchy for frflow.

Every error raised by the archive, the storage backends and the lesson
generator derives from FrflowError so the CLI can report them uniformly.
Duplicate writes are never errors and have no exception here.
"""

from __future__ import annotations


class FrflowError(Exception):
    """Base class for all frflow errors."""
    pass


class GenerationError(FrflowError):
    """Raised when the content-generation provider fails (network, auth, parse)."""
    pass


class StorageError(FrflowError):
    """Raised when a storage backend rejects a request."""

    def __init__(self, message: str, path: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class BackendUnavailableError(StorageError):
    """
    Raised when the remote store cannot be reached or answers with a 5xx.

    Archival and scheduling writes let this propagate to the caller.
    Settings sync and cache mirroring log it and fall back to local values.
    """
    pass

"""
frflow Storage Modes

Defines the two persistence modes of a session:
1. Local Mode - no cloud identity, everything lives in the device store
2. Synced Mode - a cloud identity is present, the remote store is
   authoritative and the device store only caches remote reads

The mode is decided once at session start from an explicit identity value
and handed to the storage adapter; nothing reads it from global state.
Signing in or out builds a new adapter. Local and remote corpora are
independent and are never merged automatically.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from config import Settings


class StorageMode(str, Enum):
    """Persistence mode for a session."""

    LOCAL = "local"  # Device-only store
    SYNCED = "synced"  # Remote store scoped by cloud identity


@dataclass(frozen=True)
class CloudIdentity:
    """A signed-in user of the remote document store."""

    user_id: str
    id_token: str

    def __post_init__(self) -> None:
        if not self.user_id or not self.id_token:
            raise ValueError("CloudIdentity requires both user_id and id_token")


def identity_from_settings(settings: Settings) -> CloudIdentity | None:
    """
    Build the session identity from configuration.

    An identity is present only when both the user id and the token are set.
    """
    if settings.cloud_user_id and settings.cloud_id_token:
        return CloudIdentity(user_id=settings.cloud_user_id, id_token=settings.cloud_id_token)
    return None


def resolve_mode(identity: CloudIdentity | None) -> StorageMode:
    return StorageMode.SYNCED if identity is not None else StorageMode.LOCAL

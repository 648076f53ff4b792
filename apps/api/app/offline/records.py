from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

ContentKind = Literal["drill", "code", "note"]


@dataclass
class QueuedAction:
    """A remote write waiting to be replayed."""

    id: str
    type: str
    payload: Any
    enqueued_at: float
    retry_count: int = 0


@dataclass
class LocalContentRecord:
    """User content mirrored locally; ``synced`` flips only after a remote write."""

    id: str
    kind: ContentKind
    payload: Any
    last_modified: float
    synced: bool = False


@dataclass
class CacheEntry:
    key: str
    payload: Any
    cached_at: float
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at


@dataclass
class ReplayReport:
    """Outcome of one replay pass."""

    skipped: bool = False
    replayed: int = 0
    retried: int = 0
    dropped: int = 0
    content_synced: int = 0
    content_failed: int = 0


@dataclass
class OfflineStatus:
    is_online: bool
    replay_in_progress: bool
    pending_actions: int
    unsynced_content: int

    @property
    def has_offline_actions(self) -> bool:
        return self.pending_actions > 0

    @property
    def has_unsynced_content(self) -> bool:
        return self.unsynced_content > 0

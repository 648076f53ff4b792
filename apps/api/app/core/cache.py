"""
In-process response cache with per-entry expiry.

Expired entries are only noticed when they are read; there is no
background sweep.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class _Entry:
    value: Any
    cached_at: float
    expires_at: float | None


class TTLCache:
    """
    Key/value cache with lazy expiry.

    Args:
        default_ttl: Seconds an entry lives when ``put`` gets no ttl.
            ``None`` means entries never expire by default.
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        default_ttl: float | None = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if default_ttl is not None and default_ttl <= 0:
            raise ValueError(f"default_ttl must be > 0, got {default_ttl}")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def put(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value``; ``None`` is rejected because ``get`` uses it to signal a miss."""
        if value is None:
            raise ValueError(f"cannot cache None for key {key!r}")
        now = self._clock()
        ttl = self.default_ttl if ttl is None else ttl
        expires_at = now + ttl if ttl is not None else None
        with self._lock:
            self._entries[key] = _Entry(value=value, cached_at=now, expires_at=expires_at)

    def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` on a miss or an expired entry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at is not None and self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_pattern(self, pattern: str) -> int:
        """Drop every key containing ``pattern``; returns how many were dropped."""
        with self._lock:
            doomed = [key for key in self._entries if pattern in key]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict[str, int]:
        now = self._clock()
        with self._lock:
            total = len(self._entries)
            expired = sum(
                1
                for entry in self._entries.values()
                if entry.expires_at is not None and now > entry.expires_at
            )
        return {"total": total, "valid": total - expired, "expired": expired}

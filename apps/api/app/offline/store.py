"""SQLite persistence for the offline client.

Three tables back the three local stores: ``actions`` (the outbox),
``cache`` (remote responses) and ``user_content`` (the content mirror).
Pass ``":memory:"`` as the path for a throwaway store.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any

from app.offline.records import CacheEntry, ContentKind, LocalContentRecord, QueuedAction


class SqliteOfflineStore:
    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._db_path = str(db_path)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._initialise_schema()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _initialise_schema(self) -> None:
        with self._lock:
            cursor = self._conn.cursor()
            cursor.executescript(
                """
                CREATE TABLE IF NOT EXISTS actions (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    type TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    enqueued_at REAL NOT NULL,
                    retry_count INTEGER NOT NULL DEFAULT 0
                );

                CREATE TABLE IF NOT EXISTS cache (
                    key TEXT PRIMARY KEY,
                    payload_json TEXT NOT NULL,
                    cached_at REAL NOT NULL,
                    expires_at REAL
                );

                CREATE TABLE IF NOT EXISTS user_content (
                    id TEXT PRIMARY KEY,
                    kind TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    last_modified REAL NOT NULL,
                    synced INTEGER NOT NULL DEFAULT 0
                );

                CREATE INDEX IF NOT EXISTS idx_user_content_kind ON user_content (kind);
                CREATE INDEX IF NOT EXISTS idx_user_content_synced ON user_content (synced);
                """
            )
            self._conn.commit()

    # Actions ------------------------------------------------------------
    def add_action(self, action: QueuedAction) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO actions (id, type, payload_json, enqueued_at, retry_count)
                VALUES (?, ?, ?, ?, ?)
                """,
                (action.id, action.type, json.dumps(action.payload), action.enqueued_at, action.retry_count),
            )
            self._conn.commit()

    def update_action_payload(self, action_id: str, payload: Any) -> None:
        with self._lock:
            self._conn.execute(
                "UPDATE actions SET payload_json = ? WHERE id = ?",
                (json.dumps(payload), action_id),
            )
            self._conn.commit()

    def increment_retry(self, action_id: str) -> int | None:
        """Bump the stored retry count; returns the new count, or ``None`` if the action is gone."""
        with self._lock:
            self._conn.execute("UPDATE actions SET retry_count = retry_count + 1 WHERE id = ?", (action_id,))
            self._conn.commit()
            row = self._conn.execute("SELECT retry_count FROM actions WHERE id = ?", (action_id,)).fetchone()
        return row["retry_count"] if row else None

    def delete_action(self, action_id: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM actions WHERE id = ?", (action_id,))
            self._conn.commit()

    def get_action(self, action_id: str) -> QueuedAction | None:
        with self._lock:
            row = self._conn.execute("SELECT * FROM actions WHERE id = ?", (action_id,)).fetchone()
        return self._action_from_row(row) if row else None

    def list_actions(self) -> list[QueuedAction]:
        """Every queued action in insertion order."""
        with self._lock:
            rows = self._conn.execute("SELECT * FROM actions ORDER BY seq").fetchall()
        return [self._action_from_row(row) for row in rows]

    def count_actions(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM actions").fetchone()[0]

    @staticmethod
    def _action_from_row(row: sqlite3.Row) -> QueuedAction:
        return QueuedAction(
            id=row["id"],
            type=row["type"],
            payload=json.loads(row["payload_json"]),
            enqueued_at=row["enqueued_at"],
            retry_count=row["retry_count"],
        )

    # User content -------------------------------------------------------
    def put_content(self, record: LocalContentRecord) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO user_content (id, kind, payload_json, last_modified, synced)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    kind = excluded.kind,
                    payload_json = excluded.payload_json,
                    last_modified = excluded.last_modified,
                    synced = excluded.synced
                """,
                (record.id, record.kind, json.dumps(record.payload), record.last_modified, int(record.synced)),
            )
            self._conn.commit()

    def get_content(self, record_id: str) -> LocalContentRecord | None:
        with self._lock:
            row = self._conn.execute("SELECT * FROM user_content WHERE id = ?", (record_id,)).fetchone()
        return self._content_from_row(row) if row else None

    def list_content(
        self,
        *,
        kind: ContentKind | None = None,
        synced: bool | None = None,
    ) -> list[LocalContentRecord]:
        clauses: list[str] = []
        params: list[Any] = []
        if kind is not None:
            clauses.append("kind = ?")
            params.append(kind)
        if synced is not None:
            clauses.append("synced = ?")
            params.append(int(synced))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._lock:
            rows = self._conn.execute(f"SELECT * FROM user_content{where} ORDER BY rowid", params).fetchall()
        return [self._content_from_row(row) for row in rows]

    def mark_synced(self, record_id: str, last_modified: float) -> bool:
        """Flag a record synced unless it was modified after ``last_modified``."""
        with self._lock:
            cursor = self._conn.execute(
                "UPDATE user_content SET synced = 1 WHERE id = ? AND last_modified <= ?",
                (record_id, last_modified),
            )
            self._conn.commit()
            return cursor.rowcount > 0

    @staticmethod
    def _content_from_row(row: sqlite3.Row) -> LocalContentRecord:
        return LocalContentRecord(
            id=row["id"],
            kind=row["kind"],
            payload=json.loads(row["payload_json"]),
            last_modified=row["last_modified"],
            synced=bool(row["synced"]),
        )

    # Cache --------------------------------------------------------------
    def put_cache(self, entry: CacheEntry) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO cache (key, payload_json, cached_at, expires_at)
                VALUES (?, ?, ?, ?)
                """,
                (entry.key, json.dumps(entry.payload), entry.cached_at, entry.expires_at),
            )
            self._conn.commit()

    def get_cache(self, key: str) -> CacheEntry | None:
        with self._lock:
            row = self._conn.execute("SELECT * FROM cache WHERE key = ?", (key,)).fetchone()
        if not row:
            return None
        return CacheEntry(
            key=row["key"],
            payload=json.loads(row["payload_json"]),
            cached_at=row["cached_at"],
            expires_at=row["expires_at"],
        )

    def delete_cache(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM cache WHERE key = ?", (key,))
            self._conn.commit()

    def list_cache(self) -> list[CacheEntry]:
        with self._lock:
            rows = self._conn.execute("SELECT * FROM cache ORDER BY rowid").fetchall()
        return [
            CacheEntry(
                key=row["key"],
                payload=json.loads(row["payload_json"]),
                cached_at=row["cached_at"],
                expires_at=row["expires_at"],
            )
            for row in rows
        ]

    # Maintenance --------------------------------------------------------
    def clear(self) -> None:
        with self._lock:
            self._conn.executescript(
                """
                DELETE FROM actions;
                DELETE FROM cache;
                DELETE FROM user_content;
                """
            )
            self._conn.commit()

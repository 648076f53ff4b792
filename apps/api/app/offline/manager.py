"""Offline-first client for the Dojo API.

Writes are recorded locally first and replayed against the remote API when
the platform reports connectivity. A replay pass is single-flight: a request
that arrives while a pass is running is dropped, not queued, and no pass
runs while the platform reports offline.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import uuid4

from app.core.config import Settings
from app.core.errors import DojoError, as_dojo_error
from app.core.logging_utils import get_logger
from app.offline.platform import Platform, ProbePlatform
from app.offline.records import (
    CacheEntry,
    ContentKind,
    LocalContentRecord,
    OfflineStatus,
    QueuedAction,
    ReplayReport,
)
from app.offline.store import SqliteOfflineStore
from app.offline.transport import HttpTransport, RemoteTransport


logger = get_logger("offline")

CREATE_DRILL = "create-drill"
SAVE_CODE = "save-code"
SYNC_CONTENT = "sync-content"

ACTION_ENDPOINTS = {
    CREATE_DRILL: "/api/drills",
    SAVE_CODE: "/api/code-snippets",
}

CONTENT_ENDPOINTS: dict[str, str] = {
    "drill": "/api/drills",
    "code": "/api/code-snippets",
    "note": "/api/notes",
}

DEFAULT_MAX_RETRIES = 3


def new_action_id(action_type: str, now: float) -> str:
    return f"{action_type}-{int(now * 1000)}-{uuid4().hex[:9]}"


class OfflineManager:
    """Outbox, response cache and content mirror behind one object.

    The manager takes ownership of ``store``, ``transport`` and ``platform``:
    :meth:`close` stops the platform and closes the other two when they
    expose ``close``. Pass ``background=True`` to run replays triggered by
    :meth:`enqueue` and by connectivity changes on a single worker thread;
    otherwise they run inline on the calling thread.
    """

    def __init__(
        self,
        store: SqliteOfflineStore,
        transport: RemoteTransport,
        platform: Platform,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        background: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._transport = transport
        self._platform = platform
        self._max_retries = max_retries
        self._clock = clock
        self._executor: Executor | None = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="dojo-replay") if background else None
        )
        self._replay_lock = threading.Lock()
        self._started = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "OfflineManager":
        return cls(
            SqliteOfflineStore(settings.offline_db_path),
            HttpTransport(settings.offline_remote_base_url, timeout_sec=settings.offline_request_timeout_sec),
            ProbePlatform(
                settings.offline_remote_base_url,
                probe_path=settings.offline_probe_path,
                interval_sec=settings.offline_probe_interval_sec,
                timeout_sec=settings.offline_request_timeout_sec,
            ),
            max_retries=settings.offline_max_retries,
            background=True,
        )

    # Lifecycle ----------------------------------------------------------
    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._platform.subscribe(self._on_connectivity_change)
        self._platform.start()
        if self._platform.is_online():
            self._schedule_replay()

    def close(self) -> None:
        self._platform.stop()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
        close_transport = getattr(self._transport, "close", None)
        if callable(close_transport):
            close_transport()
        self._store.close()

    def __enter__(self) -> "OfflineManager":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            logger.info("Back online, replaying offline actions")
            self._schedule_replay()
        else:
            logger.info("Gone offline, writes will be queued")

    # Outbox -------------------------------------------------------------
    def enqueue(self, action_type: str, payload: Any) -> str:
        """Persist an action and, when online, trigger a replay pass."""
        now = self._clock()
        action = QueuedAction(
            id=new_action_id(action_type, now),
            type=action_type,
            payload=payload,
            enqueued_at=now,
        )
        self._store.add_action(action)
        logger.debug("Queued offline action", extra={"action_id": action.id, "action_type": action_type})

        if self._platform.is_online():
            self._schedule_replay()
        return action.id

    def pending_actions(self) -> list[QueuedAction]:
        return self._store.list_actions()

    def _schedule_replay(self) -> Future | ReplayReport:
        if self._executor is not None:
            return self._executor.submit(self.replay_all)
        return self.replay_all()

    def replay_all(self) -> ReplayReport:
        if not self._replay_lock.acquire(blocking=False):
            logger.debug("Replay already in progress, request dropped")
            return ReplayReport(skipped=True)

        try:
            if not self._platform.is_online():
                logger.debug("Offline, replay skipped")
                return ReplayReport(skipped=True)

            report = ReplayReport()
            for action in self._store.list_actions():
                self._replay_action(action, report)
            self._push_unsynced_content(report)
        finally:
            self._replay_lock.release()

        logger.info("Replay pass finished", extra=asdict(report))
        return report

    def _replay_action(self, action: QueuedAction, report: ReplayReport) -> None:
        try:
            handled = self._process_action(action)
        except Exception as exc:
            self._record_failure(action, as_dojo_error(exc), report)
            return

        self._store.delete_action(action.id)
        if handled:
            report.replayed += 1

    def _record_failure(self, action: QueuedAction, error: DojoError, report: ReplayReport) -> None:
        retry_count = self._store.increment_retry(action.id)
        if retry_count is None:
            return
        if retry_count > self._max_retries:
            self._store.delete_action(action.id)
            report.dropped += 1
            logger.warning(
                "Dropping offline action after repeated failures",
                extra={
                    "action_id": action.id,
                    "action_type": action.type,
                    "retry_count": retry_count,
                    "error_kind": error.kind.value,
                    "reason": error.reason,
                },
            )
            return

        report.retried += 1
        logger.info(
            "Offline action failed, will retry",
            extra={
                "action_id": action.id,
                "action_type": action.type,
                "retry_count": retry_count,
                "error_kind": error.kind.value,
            },
        )

    def _process_action(self, action: QueuedAction) -> bool:
        """Deliver one action. Returns False for unknown types, which are discarded."""
        endpoint = ACTION_ENDPOINTS.get(action.type)
        if endpoint is not None:
            self._transport.post(endpoint, action.payload)
            return True

        if action.type == SYNC_CONTENT:
            payload = action.payload or {}
            self._transport.post(CONTENT_ENDPOINTS[payload["kind"]], payload["content"])
            self._store.mark_synced(payload["id"], payload["lastModified"])
            return True

        logger.warning("Unknown offline action type", extra={"action_id": action.id, "action_type": action.type})
        return False

    def _push_unsynced_content(self, report: ReplayReport) -> None:
        queued_ids = {
            action.payload.get("id")
            for action in self._store.list_actions()
            if action.type == SYNC_CONTENT and isinstance(action.payload, dict)
        }
        for record in self._store.list_content(synced=False):
            if record.id in queued_ids:
                continue
            try:
                self._transport.post(CONTENT_ENDPOINTS[record.kind], record.payload)
            except Exception as exc:
                error = as_dojo_error(exc)
                report.content_failed += 1
                logger.info(
                    "Content sync failed",
                    extra={"record_id": record.id, "error_kind": error.kind.value},
                )
                continue
            if self._store.mark_synced(record.id, record.last_modified):
                report.content_synced += 1

    # Content mirror -----------------------------------------------------
    def save_user_content(self, record_id: str, kind: ContentKind, payload: Any) -> LocalContentRecord:
        if kind not in CONTENT_ENDPOINTS:
            raise ValueError(f"unsupported content kind: {kind}")

        record = LocalContentRecord(
            id=record_id,
            kind=kind,
            payload=payload,
            last_modified=self._clock(),
            synced=False,
        )
        self._store.put_content(record)
        sync_payload = {
            "id": record.id,
            "kind": record.kind,
            "content": record.payload,
            "lastModified": record.last_modified,
        }

        pending = self._pending_sync_action(record_id)
        if pending is not None:
            self._store.update_action_payload(pending.id, sync_payload)

        if self._platform.is_online():
            self._schedule_replay()
        elif pending is None:
            self.enqueue(SYNC_CONTENT, sync_payload)
        return record

    def _pending_sync_action(self, record_id: str) -> QueuedAction | None:
        for action in self._store.list_actions():
            if action.type == SYNC_CONTENT and isinstance(action.payload, dict) and action.payload.get("id") == record_id:
                return action
        return None

    def get_user_content(self, record_id: str) -> LocalContentRecord | None:
        return self._store.get_content(record_id)

    def list_user_content(self, kind: ContentKind | None = None) -> list[LocalContentRecord]:
        return self._store.list_content(kind=kind)

    # Response cache -----------------------------------------------------
    def cache_response(self, key: str, payload: Any, ttl: float | None = None) -> None:
        """Cache a remote response. ``None`` is rejected since a miss reads as ``None``."""
        if payload is None:
            raise ValueError(f"cannot cache None for key {key!r}")
        now = self._clock()
        self._store.put_cache(
            CacheEntry(
                key=key,
                payload=payload,
                cached_at=now,
                expires_at=now + ttl if ttl is not None else None,
            )
        )

    def get_cached_response(self, key: str) -> Any:
        entry = self._store.get_cache(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._store.delete_cache(key)
            return None
        return entry.payload

    # Inspection ---------------------------------------------------------
    def status(self) -> OfflineStatus:
        return OfflineStatus(
            is_online=self._platform.is_online(),
            replay_in_progress=self._replay_lock.locked(),
            pending_actions=self._store.count_actions(),
            unsynced_content=len(self._store.list_content(synced=False)),
        )

    def clear(self) -> None:
        self._store.clear()
        logger.info("Offline data cleared")

    def export(self) -> dict[str, Any]:
        return {
            "actions": [asdict(action) for action in self._store.list_actions()],
            "cache": [asdict(entry) for entry in self._store.list_cache()],
            "userContent": [asdict(record) for record in self._store.list_content()],
            "exportDate": datetime.now(timezone.utc).isoformat(),
        }

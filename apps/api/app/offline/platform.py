"""Connectivity capability for the offline client.

The manager never asks the host environment directly whether it is online;
it is handed a :class:`Platform` instead. :class:`StaticPlatform` is driven
by hand (tests, embedded callers) and :class:`ProbePlatform` polls a health
endpoint of the remote API.
"""

from __future__ import annotations

import threading
from typing import Callable, Protocol

import httpx

from app.core.logging_utils import get_logger


logger = get_logger("offline.platform")

ConnectivityCallback = Callable[[bool], None]


class Platform(Protocol):
    def is_online(self) -> bool:
        ...

    def subscribe(self, callback: ConnectivityCallback) -> None:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


class _CallbackRegistry:
    def __init__(self) -> None:
        self._callbacks: list[ConnectivityCallback] = []
        self._online = False
        self._lock = threading.Lock()

    def subscribe(self, callback: ConnectivityCallback) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def is_online(self) -> bool:
        return self._online

    def _transition(self, online: bool) -> None:
        with self._lock:
            if online == self._online:
                return
            self._online = online
            callbacks = list(self._callbacks)

        logger.info("Connectivity changed", extra={"online": online})
        for callback in callbacks:
            callback(online)


class StaticPlatform(_CallbackRegistry):
    """Connectivity flipped explicitly with :meth:`set_online`."""

    def __init__(self, online: bool = True) -> None:
        super().__init__()
        self._online = online

    def set_online(self, online: bool) -> None:
        self._transition(online)

    def start(self) -> None:
        return None

    def stop(self) -> None:
        return None


class ProbePlatform(_CallbackRegistry):
    """Treat the remote API as reachable while its health endpoint answers 2xx."""

    def __init__(
        self,
        base_url: str,
        *,
        probe_path: str = "/health",
        interval_sec: float = 15.0,
        timeout_sec: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__()
        self._probe_path = probe_path
        self._interval_sec = interval_sec
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout_sec)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def probe(self) -> bool:
        """Run one probe and fire callbacks when the result differs from the last one."""
        try:
            response = self._client.get(self._probe_path)
            online = response.is_success
        except httpx.HTTPError as exc:
            logger.debug("Connectivity probe failed", extra={"error": str(exc)})
            online = False
        self._transition(online)
        return online

    def start(self) -> None:
        if self._thread is not None:
            return
        self.probe()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="dojo-connectivity", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval_sec)
            self._thread = None
        if self._owns_client:
            self._client.close()

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval_sec):
            self.probe()

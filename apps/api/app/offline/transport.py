from __future__ import annotations

from typing import Any, Protocol

import httpx

from app.core.errors import DojoError, ErrorKind, kind_for_status


class RemoteTransport(Protocol):
    def post(self, endpoint: str, payload: Any) -> Any:
        ...


class HttpTransport:
    """JSON POSTs to the remote API; every failure surfaces as a tagged ``DojoError``."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_sec: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout_sec)

    def post(self, endpoint: str, payload: Any) -> Any:
        try:
            response = self._client.post(endpoint, json=payload)
        except httpx.TimeoutException as exc:
            raise DojoError(ErrorKind.TIMEOUT, f"remote_timeout:{endpoint}") from exc
        except httpx.TransportError as exc:
            raise DojoError(ErrorKind.NETWORK, f"remote_unreachable:{endpoint}:{exc}") from exc

        if response.status_code >= 400:
            raise DojoError(
                kind_for_status(response.status_code),
                f"remote_http_{response.status_code}:{endpoint}",
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise DojoError(ErrorKind.SERVICE, f"remote_invalid_json:{endpoint}") from exc

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

import json
import socket
from typing import Any
from urllib import error, request

from app.core.errors import DojoError, ErrorKind, kind_for_status


def strip_code_fence(text: str) -> str:
    raw = text.strip()
    if raw.startswith("```"):
        lines = raw.splitlines()
        if len(lines) >= 2 and lines[-1].strip().startswith("```"):
            return "\n".join(lines[1:-1]).strip()
    return raw


def parse_json_text(text: str) -> dict:
    cleaned = strip_code_fence(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise DojoError(ErrorKind.SCHEMA_MISMATCH, f"ai_response_not_json:{exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise DojoError(ErrorKind.SCHEMA_MISMATCH, "ai_response_not_object")
    return parsed


def post_json(
    endpoint: str,
    payload: dict[str, Any],
    *,
    headers: dict[str, str],
    timeout_sec: float,
    provider: str,
) -> dict[str, Any]:
    """POST a JSON body and decode the JSON reply, tagging transport failures."""

    req = request.Request(
        endpoint,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json", **headers},
        method="POST",
    )

    try:
        with request.urlopen(req, timeout=timeout_sec) as response:
            body = response.read().decode("utf-8")
    except error.HTTPError as exc:
        kind = kind_for_status(exc.code)
        if kind is ErrorKind.INVALID_INPUT:
            kind = ErrorKind.SERVICE
        raise DojoError(kind, f"{provider}_request_failed:http_{exc.code}") from exc
    except error.URLError as exc:
        if isinstance(exc.reason, (socket.timeout, TimeoutError)):
            raise DojoError(ErrorKind.TIMEOUT, f"{provider}_request_timed_out") from exc
        raise DojoError(ErrorKind.NETWORK, f"{provider}_request_failed:{exc.reason}") from exc
    except (socket.timeout, TimeoutError) as exc:
        raise DojoError(ErrorKind.TIMEOUT, f"{provider}_request_timed_out") from exc

    try:
        decoded = json.loads(body)
    except json.JSONDecodeError as exc:
        raise DojoError(ErrorKind.SERVICE, f"{provider}_response_not_json") from exc
    if not isinstance(decoded, dict):
        raise DojoError(ErrorKind.SERVICE, f"{provider}_response_not_object")
    return decoded

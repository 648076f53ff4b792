"""Closed error taxonomy shared by the API, the AI providers and the offline client.

Errors are tagged with an :class:`ErrorKind` where they originate (an HTTP
status, a provider response, a validator). Nothing downstream inspects the
message text to decide what kind of failure it was.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NETWORK = "network"
    PERMISSION = "permission"
    SERVICE = "service"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    SCHEMA_MISMATCH = "schema_mismatch"
    QUALITY_FAILED = "quality_failed"
    EMPTY_OUTPUT = "empty_output"
    CONFIG_ERROR = "config_error"
    INVALID_INPUT = "invalid_input"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in RETRYABLE_KINDS

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self]


RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.NETWORK,
        ErrorKind.SERVICE,
        ErrorKind.RATE_LIMITED,
        ErrorKind.TIMEOUT,
        ErrorKind.SCHEMA_MISMATCH,
        ErrorKind.QUALITY_FAILED,
        ErrorKind.UNKNOWN,
    }
)

STATUS_CODES = {
    ErrorKind.NETWORK: 503,
    ErrorKind.PERMISSION: 403,
    ErrorKind.SERVICE: 502,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.SCHEMA_MISMATCH: 422,
    ErrorKind.QUALITY_FAILED: 422,
    ErrorKind.EMPTY_OUTPUT: 502,
    ErrorKind.CONFIG_ERROR: 503,
    ErrorKind.INVALID_INPUT: 422,
    ErrorKind.UNKNOWN: 500,
}

DEFAULT_MESSAGES = {
    ErrorKind.NETWORK: "Connection problem. Please check your internet connection and try again.",
    ErrorKind.PERMISSION: "You do not have permission to access this content.",
    ErrorKind.SERVICE: "Service is temporarily unavailable. Please try again in a moment.",
    ErrorKind.NOT_FOUND: "The requested content could not be found.",
    ErrorKind.RATE_LIMITED: "AI provider rate limited the request",
    ErrorKind.TIMEOUT: "Request timed out",
    ErrorKind.SCHEMA_MISMATCH: "AI response schema mismatch",
    ErrorKind.QUALITY_FAILED: "Generated output did not pass quality checks",
    ErrorKind.EMPTY_OUTPUT: "AI returned empty content",
    ErrorKind.CONFIG_ERROR: "AI service configuration error",
    ErrorKind.INVALID_INPUT: "Request content is invalid",
    ErrorKind.UNKNOWN: "An unexpected error occurred. Please try again.",
}


class DojoError(RuntimeError):
    """Failure tagged with the kind of error it is.

    ``reason`` is a short machine-oriented token (``gemini_request_failed``,
    ``solution_count_mismatch`` ...) and is kept for logs and the legacy
    ``detail`` field of HTTP error payloads.
    """

    def __init__(
        self,
        kind: ErrorKind,
        reason: str = "",
        *,
        message: str | None = None,
        retryable: bool | None = None,
    ) -> None:
        self.kind = kind
        self.reason = " ".join(str(reason or "").split())[:300] or kind.value
        self.message = message or DEFAULT_MESSAGES[kind]
        self.retryable = kind.retryable if retryable is None else retryable
        super().__init__(f"{kind.value}:{self.reason}")

    @property
    def status_code(self) -> int:
        return self.kind.status_code


def as_dojo_error(exc: BaseException) -> DojoError:
    """Wrap a foreign exception as an ``unknown`` error, keeping tagged ones."""

    if isinstance(exc, DojoError):
        return exc
    reason = str(exc).strip() or type(exc).__name__
    return DojoError(ErrorKind.UNKNOWN, reason)


def kind_for_status(status_code: int) -> ErrorKind:
    if status_code in (401, 403):
        return ErrorKind.PERMISSION
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 408:
        return ErrorKind.TIMEOUT
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code in (400, 409, 422):
        return ErrorKind.INVALID_INPUT
    if status_code >= 500:
        return ErrorKind.SERVICE
    return ErrorKind.UNKNOWN

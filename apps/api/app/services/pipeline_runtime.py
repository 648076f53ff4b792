from __future__ import annotations

from typing import Any, Callable

from app.core.errors import DojoError, ErrorKind, as_dojo_error
from app.core.logging_utils import get_logger


logger = get_logger("pipeline")

DEFAULT_RETRYABLE_FAILURE_KINDS = frozenset(
    {
        ErrorKind.RATE_LIMITED,
        ErrorKind.TIMEOUT,
        ErrorKind.SCHEMA_MISMATCH,
        ErrorKind.QUALITY_FAILED,
    }
)


class PipelineFailure(RuntimeError):
    def __init__(self, *, pipeline: str, error: DojoError, attempt_count: int) -> None:
        self.pipeline = pipeline
        self.error = error
        self.attempt_count = attempt_count
        super().__init__(format_pipeline_error_detail(pipeline, error.kind.value, error.reason))

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def status_code(self) -> int:
        return self.error.status_code

    @property
    def retryable(self) -> bool:
        return self.error.retryable

    @property
    def reason(self) -> str:
        return self.error.reason


def format_pipeline_error_detail(pipeline: str, kind: str, reason: str) -> str:
    normalized = " ".join(str(reason or "").split())[:260] or "ai_provider_failed"
    return f"{pipeline}_failed:{kind}:{normalized}"


def run_ai_with_retry(
    call: Callable[[int], Any],
    *,
    pipeline: str,
    max_attempts: int = 2,
    retryable_kinds: frozenset[ErrorKind] | set[ErrorKind] | None = None,
) -> tuple[Any, int]:
    """Run ``call(attempt)`` until it succeeds or fails with a non-retryable kind.

    Returns the result together with the attempt number that produced it.
    """
    attempts = max(1, int(max_attempts))
    retryable_kinds = retryable_kinds or DEFAULT_RETRYABLE_FAILURE_KINDS

    for attempt in range(1, attempts + 1):
        try:
            return call(attempt), attempt
        except Exception as exc:
            error = as_dojo_error(exc)
            should_retry = attempt < attempts and error.retryable and error.kind in retryable_kinds
            logger.info(
                "AI pipeline attempt failed",
                extra={
                    "pipeline": pipeline,
                    "attempt": attempt,
                    "error_kind": error.kind.value,
                    "reason": error.reason,
                    "will_retry": should_retry,
                },
            )
            if should_retry:
                continue
            raise PipelineFailure(pipeline=pipeline, error=error, attempt_count=attempt) from exc

    raise PipelineFailure(
        pipeline=pipeline,
        error=DojoError(ErrorKind.SERVICE, "ai_retry_exhausted"),
        attempt_count=attempts,
    )

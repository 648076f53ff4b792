from typing import Any

from fastapi import HTTPException

from app.core.errors import DojoError, ErrorKind, kind_for_status
from app.services.pipeline_runtime import PipelineFailure, format_pipeline_error_detail


KNOWN_ERROR_CODES = {kind.value for kind in ErrorKind}


def normalize_error_code(value: Any) -> str:
    raw = str(value or "").strip().lower()
    if raw in KNOWN_ERROR_CODES:
        return raw
    return ErrorKind.UNKNOWN.value


def _compact(value: Any) -> str:
    return " ".join(str(value or "").split()).strip()


def build_structured_error_detail(
    *,
    error_code: str,
    message: str | None = None,
    retryable: bool | None = None,
    detail: Any = None,
) -> dict[str, Any]:
    kind = ErrorKind(normalize_error_code(error_code))
    message_text = _compact(message) or _compact(detail) or DojoError(kind).message
    if retryable is None:
        retryable = kind.retryable

    return {
        "error_code": kind.value,
        "message": message_text[:260],
        "retryable": bool(retryable),
        "detail": _compact(detail) or message_text,
    }


def http_exception_for(
    error: DojoError | PipelineFailure,
    *,
    pipeline: str | None = None,
    message: str | None = None,
) -> HTTPException:
    """Turn a tagged failure into an ``HTTPException`` carrying the structured detail.

    ``message`` replaces the learner-facing text, e.g. with a flow's static
    "couldn't generate" message.
    """

    if isinstance(error, PipelineFailure):
        pipeline = error.pipeline
        error = error.error

    if pipeline:
        legacy = format_pipeline_error_detail(pipeline, error.kind.value, error.reason)
    else:
        legacy = error.reason
    return HTTPException(
        status_code=error.status_code,
        detail=build_structured_error_detail(
            error_code=error.kind.value,
            message=message or error.message,
            retryable=error.retryable,
            detail=legacy,
        ),
    )


def build_http_error_payload(exc: HTTPException, trace_id: str) -> dict[str, Any]:
    detail = exc.detail

    if isinstance(detail, dict):
        structured = build_structured_error_detail(
            error_code=detail.get("error_code") or kind_for_status(exc.status_code).value,
            message=detail.get("message"),
            retryable=detail.get("retryable"),
            detail=detail.get("detail"),
        )
    else:
        structured = build_structured_error_detail(
            error_code=kind_for_status(exc.status_code).value,
            message=_compact(detail),
            detail=detail,
        )

    return {
        "error_code": structured["error_code"],
        "message": structured["message"],
        "retryable": structured["retryable"],
        "trace_id": trace_id,
        "detail": structured["detail"],
    }


def build_error_payload(error: DojoError, trace_id: str) -> dict[str, Any]:
    return {
        "error_code": error.kind.value,
        "message": error.message[:260],
        "retryable": error.retryable,
        "trace_id": trace_id,
        "detail": error.reason,
    }


def build_unexpected_error_payload(trace_id: str) -> dict[str, Any]:
    return {
        "error_code": ErrorKind.UNKNOWN.value,
        "message": "Unexpected server error",
        "retryable": False,
        "trace_id": trace_id,
        "detail": "unexpected_server_error",
    }

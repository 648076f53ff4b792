import unittest

from fastapi import HTTPException

from app.core.errors import DojoError, ErrorKind, as_dojo_error, kind_for_status
from app.services.error_policy import (
    build_error_payload,
    build_http_error_payload,
    build_structured_error_detail,
    http_exception_for,
    normalize_error_code,
)
from app.services.pipeline_runtime import PipelineFailure


class ErrorKindTests(unittest.TestCase):
    def test_retryable_kinds(self) -> None:
        for kind in (ErrorKind.NETWORK, ErrorKind.SERVICE, ErrorKind.TIMEOUT, ErrorKind.RATE_LIMITED):
            self.assertTrue(kind.retryable, kind)
        for kind in (ErrorKind.PERMISSION, ErrorKind.NOT_FOUND, ErrorKind.INVALID_INPUT, ErrorKind.CONFIG_ERROR):
            self.assertFalse(kind.retryable, kind)

    def test_kind_for_status(self) -> None:
        self.assertIs(kind_for_status(401), ErrorKind.PERMISSION)
        self.assertIs(kind_for_status(403), ErrorKind.PERMISSION)
        self.assertIs(kind_for_status(404), ErrorKind.NOT_FOUND)
        self.assertIs(kind_for_status(408), ErrorKind.TIMEOUT)
        self.assertIs(kind_for_status(429), ErrorKind.RATE_LIMITED)
        self.assertIs(kind_for_status(422), ErrorKind.INVALID_INPUT)
        self.assertIs(kind_for_status(503), ErrorKind.SERVICE)
        self.assertIs(kind_for_status(418), ErrorKind.UNKNOWN)

    def test_dojo_error_defaults_from_kind(self) -> None:
        error = DojoError(ErrorKind.NOT_FOUND, "drill_not_found:abc")

        self.assertEqual(error.reason, "drill_not_found:abc")
        self.assertEqual(error.status_code, 404)
        self.assertFalse(error.retryable)
        self.assertEqual(error.message, "The requested content could not be found.")

    def test_as_dojo_error_keeps_tagged_errors(self) -> None:
        tagged = DojoError(ErrorKind.TIMEOUT, "slow")
        self.assertIs(as_dojo_error(tagged), tagged)

        wrapped = as_dojo_error(ValueError("boom"))
        self.assertIs(wrapped.kind, ErrorKind.UNKNOWN)
        self.assertEqual(wrapped.reason, "boom")


class ErrorPolicyTests(unittest.TestCase):
    def test_structured_detail_round_trip(self) -> None:
        detail = build_structured_error_detail(
            error_code="rate_limited",
            message="AI provider rate limited the request",
            retryable=True,
            detail="hint_generate_failed:rate_limited:gemini_request_failed:http_429",
        )
        exc = HTTPException(status_code=429, detail=detail)
        payload = build_http_error_payload(exc, trace_id="trace-1")

        self.assertEqual(payload["error_code"], "rate_limited")
        self.assertEqual(payload["message"], "AI provider rate limited the request")
        self.assertTrue(payload["retryable"])
        self.assertEqual(payload["trace_id"], "trace-1")
        self.assertIn("hint_generate_failed:rate_limited", payload["detail"])

    def test_unknown_error_code_is_normalized(self) -> None:
        self.assertEqual(normalize_error_code("provider_error"), "unknown")
        self.assertEqual(normalize_error_code(" TIMEOUT "), "timeout")

    def test_plain_http_exception_uses_status_for_code(self) -> None:
        payload = build_http_error_payload(HTTPException(status_code=404, detail="Not Found"), trace_id="t")

        self.assertEqual(payload["error_code"], "not_found")
        self.assertEqual(payload["message"], "Not Found")
        self.assertFalse(payload["retryable"])

    def test_http_exception_for_pipeline_failure_uses_fallback_message(self) -> None:
        failure = PipelineFailure(
            pipeline="workout_generate",
            error=DojoError(ErrorKind.QUALITY_FAILED, "workout_contract_violated:crawl_blanks_not_increased:2->2"),
            attempt_count=2,
        )

        exc = http_exception_for(failure, message="Couldn't generate this workout mode. Please try again.")

        self.assertEqual(exc.status_code, 422)
        self.assertEqual(exc.detail["error_code"], "quality_failed")
        self.assertTrue(exc.detail["retryable"])
        self.assertEqual(exc.detail["message"], "Couldn't generate this workout mode. Please try again.")
        self.assertTrue(exc.detail["detail"].startswith("workout_generate_failed:quality_failed:"))

    def test_build_error_payload_from_dojo_error(self) -> None:
        payload = build_error_payload(DojoError(ErrorKind.CONFIG_ERROR, "gemini_api_key_missing"), trace_id="t-9")

        self.assertEqual(
            payload,
            {
                "error_code": "config_error",
                "message": "AI service configuration error",
                "retryable": False,
                "trace_id": "t-9",
                "detail": "gemini_api_key_missing",
            },
        )


if __name__ == "__main__":
    unittest.main()

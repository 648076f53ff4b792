import io
import json
import socket
import unittest
from unittest import mock
from urllib import error

from app.core.config import Settings
from app.core.errors import DojoError, ErrorKind
from app.domain.ai import AIService, build_ai_service
from app.domain.ai.providers import GeminiProvider, OpenAIProvider
from app.domain.ai.providers.common import parse_json_text


class _Response(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def _reply(payload: dict) -> _Response:
    return _Response(json.dumps(payload).encode("utf-8"))


URLOPEN = "app.domain.ai.providers.common.request.urlopen"


class ProviderTests(unittest.TestCase):
    def test_gemini_extracts_json_from_fenced_text(self) -> None:
        reply = {"candidates": [{"content": {"parts": [{"text": '```json\n{"hint": "look at range"}\n```'}]}}]}
        provider = GeminiProvider(api_key="k", model="gemini-2.0-flash")

        with mock.patch(URLOPEN, return_value=_reply(reply)) as urlopen:
            result = provider.generate_json(system_prompt="s", user_prompt="u")

        self.assertEqual(result, {"hint": "look at range"})
        sent = urlopen.call_args.args[0]
        self.assertIn("gemini-2.0-flash:generateContent", sent.full_url)

    def test_openai_reads_message_content(self) -> None:
        reply = {"choices": [{"message": {"content": '{"answer": "42"}'}}]}
        provider = OpenAIProvider(api_key="k", model="gpt-4o-mini", base_url="https://api.example.test/v1/")

        with mock.patch(URLOPEN, return_value=_reply(reply)) as urlopen:
            result = provider.generate_json(system_prompt="s", user_prompt="u")

        self.assertEqual(result, {"answer": "42"})
        sent = urlopen.call_args.args[0]
        self.assertEqual(sent.full_url, "https://api.example.test/v1/chat/completions")
        self.assertEqual(sent.get_header("Authorization"), "Bearer k")

    def test_http_errors_are_tagged_by_status(self) -> None:
        provider = GeminiProvider(api_key="k", model="m")
        http_error = error.HTTPError("https://x", 429, "Too Many Requests", hdrs=None, fp=None)

        with mock.patch(URLOPEN, side_effect=http_error):
            with self.assertRaises(DojoError) as ctx:
                provider.generate_json(system_prompt="s", user_prompt="u")

        self.assertIs(ctx.exception.kind, ErrorKind.RATE_LIMITED)
        self.assertEqual(ctx.exception.reason, "gemini_request_failed:http_429")

    def test_timeouts_are_tagged(self) -> None:
        provider = OpenAIProvider(api_key="k", model="m", base_url="https://x")

        with mock.patch(URLOPEN, side_effect=error.URLError(socket.timeout("timed out"))):
            with self.assertRaises(DojoError) as ctx:
                provider.generate_json(system_prompt="s", user_prompt="u")

        self.assertIs(ctx.exception.kind, ErrorKind.TIMEOUT)

    def test_missing_candidates_is_empty_output(self) -> None:
        provider = GeminiProvider(api_key="k", model="m")

        with mock.patch(URLOPEN, return_value=_reply({"candidates": []})):
            with self.assertRaises(DojoError) as ctx:
                provider.generate_json(system_prompt="s", user_prompt="u")

        self.assertIs(ctx.exception.kind, ErrorKind.EMPTY_OUTPUT)

    def test_non_json_text_is_schema_mismatch(self) -> None:
        with self.assertRaises(DojoError) as ctx:
            parse_json_text("Sure! Here is your drill.")
        self.assertIs(ctx.exception.kind, ErrorKind.SCHEMA_MISMATCH)

    def test_missing_key_is_config_error(self) -> None:
        with self.assertRaises(DojoError) as ctx:
            build_ai_service(Settings(_env_file=None, GEMINI_API_KEY=""))
        self.assertIs(ctx.exception.kind, ErrorKind.CONFIG_ERROR)
        self.assertEqual(ctx.exception.reason, "gemini_api_key_missing")


class _BrokenProvider:
    def generate_json(self, *, system_prompt: str, user_prompt: str) -> dict:
        raise ValueError("provider blew up")


class AIServiceTests(unittest.TestCase):
    def test_foreign_errors_are_wrapped(self) -> None:
        service = AIService(primary=_BrokenProvider())

        with self.assertRaises(DojoError) as ctx:
            service.generate_json(system_prompt="s", user_prompt="u")
        self.assertIs(ctx.exception.kind, ErrorKind.UNKNOWN)

    def test_busy_semaphore_is_rate_limited(self) -> None:
        service = AIService(primary=_BrokenProvider(), max_concurrency=1, acquire_timeout_ms=10)
        service._semaphore.acquire()
        try:
            with self.assertRaises(DojoError) as ctx:
                service.generate_json(system_prompt="s", user_prompt="u")
        finally:
            service._semaphore.release()

        self.assertIs(ctx.exception.kind, ErrorKind.RATE_LIMITED)
        self.assertEqual(ctx.exception.reason, "ai_backpressure_busy")


if __name__ == "__main__":
    unittest.main()

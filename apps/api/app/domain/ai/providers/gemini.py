from typing import Any
from urllib import parse

from app.core.errors import DojoError, ErrorKind
from app.domain.ai.providers.common import parse_json_text, post_json


class GeminiProvider:
    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_sec: int = 30,
    ) -> None:
        if not api_key:
            raise DojoError(ErrorKind.CONFIG_ERROR, "gemini_api_key_missing")
        self.api_key = api_key
        self.model = model
        self.timeout_sec = timeout_sec

    def generate_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
    ) -> dict[str, Any]:
        endpoint = (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            f"{parse.quote(self.model)}:generateContent?key={parse.quote(self.api_key)}"
        )
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": f"{system_prompt}\n\n{user_prompt}"}],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "temperature": 0.4,
            },
        }

        decoded = post_json(
            endpoint,
            payload,
            headers={},
            timeout_sec=self.timeout_sec,
            provider="gemini",
        )
        return parse_json_text(self._extract_text(decoded))

    @staticmethod
    def _extract_text(response_json: dict[str, Any]) -> str:
        candidates = response_json.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise DojoError(ErrorKind.EMPTY_OUTPUT, "gemini_candidates_missing")

        content = candidates[0].get("content", {})
        parts = content.get("parts", [])
        if not isinstance(parts, list):
            raise DojoError(ErrorKind.SCHEMA_MISMATCH, "gemini_parts_missing")

        for part in parts:
            text = part.get("text") if isinstance(part, dict) else None
            if isinstance(text, str) and text.strip():
                return text

        raise DojoError(ErrorKind.EMPTY_OUTPUT, "gemini_text_missing")

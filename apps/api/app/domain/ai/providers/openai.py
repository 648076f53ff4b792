from typing import Any

from app.core.errors import DojoError, ErrorKind
from app.domain.ai.providers.common import parse_json_text, post_json


class OpenAIProvider:
    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        timeout_sec: int = 30,
    ) -> None:
        if not api_key:
            raise DojoError(ErrorKind.CONFIG_ERROR, "openai_api_key_missing")
        if not base_url:
            raise DojoError(ErrorKind.CONFIG_ERROR, "openai_base_url_missing")

        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec

    def generate_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
    ) -> dict[str, Any]:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": 0.4,
            "response_format": {"type": "json_object"},
        }

        decoded = post_json(
            f"{self.base_url}/chat/completions",
            payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout_sec=self.timeout_sec,
            provider="openai",
        )
        return parse_json_text(self._extract_text(decoded))

    @staticmethod
    def _extract_text(response_json: dict[str, Any]) -> str:
        choices = response_json.get("choices")
        if not isinstance(choices, list) or not choices:
            raise DojoError(ErrorKind.EMPTY_OUTPUT, "openai_choices_missing")

        message = choices[0].get("message", {})
        content = message.get("content")

        if isinstance(content, str) and content.strip():
            return content

        if isinstance(content, list):
            texts = [
                part["text"]
                for part in content
                if isinstance(part, dict) and isinstance(part.get("text"), str) and part["text"].strip()
            ]
            if texts:
                return "\n".join(texts)

        raise DojoError(ErrorKind.EMPTY_OUTPUT, "openai_content_missing")

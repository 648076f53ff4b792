from typing import Any

from pydantic import BaseModel, Field

from app.core.errors import DojoError, ErrorKind
from app.domain.ai import AIService
from app.services.pipeline_runtime import run_ai_with_retry


HINT_FALLBACK = "Sorry, I could not generate a hint at this time."
CLARIFICATION_FALLBACK = "Sorry, I could not generate a clarification at this time."
COMPLETION_FALLBACK = "Sorry, I could not generate a code completion at this time."
EXPLANATION_FALLBACK = "Sorry, I could not generate an explanation at this time."
ANSWER_FALLBACK = "Sorry, I could not generate an answer at this time."


class SimpleGenerationRequest(BaseModel):
    question: str = Field(min_length=1)


class HintRequest(BaseModel):
    drillContext: str
    userQuery: str = Field(min_length=1)


class ClarificationRequest(BaseModel):
    concept: str
    userQuestion: str = Field(min_length=1)


class CodeCompletionRequest(BaseModel):
    codeContext: str = Field(min_length=1)
    language: str = "python"


class DeeperExplanationRequest(BaseModel):
    concept: str = Field(min_length=1)
    drillContext: str = ""


def _compact_text(value: Any, max_chars: int) -> str:
    text = " ".join(str(value or "").split())
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 3].rstrip() + "..."


def _json_contract(field: str) -> str:
    return f'Format: {{"{field}": "string"}}\nReturn exactly one JSON object.'


class AssistantService:
    """Tutor flows answering a learner inside a drill.

    ``ai_service`` is ``None`` when no provider could be configured; flows
    then fail with ``config_error`` except :meth:`simple_generation`, which
    answers with a canned response so the client can be exercised offline.
    """

    def __init__(
        self,
        ai_service: AIService | None,
        *,
        unavailable_reason: str = "ai_service_not_configured",
        max_attempts: int = 2,
    ) -> None:
        self.ai_service = ai_service
        self.unavailable_reason = unavailable_reason
        self.max_attempts = max_attempts

    @property
    def configured(self) -> bool:
        return self.ai_service is not None

    def _require_ai_service(self) -> AIService:
        if self.ai_service is None:
            raise DojoError(ErrorKind.CONFIG_ERROR, f"ai_service_init_failed:{self.unavailable_reason}")
        return self.ai_service

    def _generate_text(self, *, pipeline: str, field: str, system_prompt: str, user_prompt: str) -> str:
        ai_service = self._require_ai_service()

        def call(_attempt: int) -> str:
            raw = ai_service.generate_json(
                system_prompt=f"{system_prompt}\n{_json_contract(field)}",
                user_prompt=user_prompt,
            )
            value = raw.get(field)
            if not isinstance(value, str) or not value.strip():
                raise DojoError(ErrorKind.EMPTY_OUTPUT, f"{pipeline}_empty_{field}")
            return value.strip()

        text, _attempts = run_ai_with_retry(call, pipeline=pipeline, max_attempts=self.max_attempts)
        return text

    def simple_generation(self, payload: SimpleGenerationRequest) -> dict[str, Any]:
        if not self.configured:
            return {
                "answer": (
                    f'Mock Response: You asked "{payload.question}". This is a test response '
                    "because the AI provider is not configured."
                ),
                "mock": True,
            }
        answer = self._generate_text(
            pipeline="simple_generation",
            field="answer",
            system_prompt="You are a helpful AI assistant. Answer the question clearly and concisely.",
            user_prompt=f"question={_compact_text(payload.question, 1200)}",
        )
        return {"answer": answer, "mock": False}

    def hint(self, payload: HintRequest) -> dict[str, Any]:
        hint = self._generate_text(
            pipeline="hint_generate",
            field="hint",
            system_prompt=(
                "You are an AI tutor giving hints for fill-in-the-blank coding drills.\n"
                "- Nudge the learner toward the answer; never state the full solution.\n"
                "- Keep the hint to one to three sentences."
            ),
            user_prompt=(
                f"drill_context={_compact_text(payload.drillContext, 1800)}\n"
                f"user_query={_compact_text(payload.userQuery, 600)}"
            ),
        )
        return {"hint": hint}

    def clarification(self, payload: ClarificationRequest) -> dict[str, Any]:
        clarification = self._generate_text(
            pipeline="clarification_generate",
            field="clarification",
            system_prompt=(
                "You are a tutor clarifying programming and machine learning concepts.\n"
                "- Answer the learner's question directly, then give one short example."
            ),
            user_prompt=(
                f"concept={_compact_text(payload.concept, 220)}\n"
                f"user_question={_compact_text(payload.userQuestion, 600)}"
            ),
        )
        return {"clarification": clarification}

    def code_completion(self, payload: CodeCompletionRequest) -> dict[str, Any]:
        completion = self._generate_text(
            pipeline="code_completion",
            field="completion",
            system_prompt=(
                "You are a code completion assistant.\n"
                "- Suggest the most likely continuation of the given code.\n"
                "- Keep the language and style of the snippet."
            ),
            user_prompt=(
                f"language={_compact_text(payload.language, 40)}\n"
                f"code_context={payload.codeContext[:4000]}"
            ),
        )
        return {"completion": completion}

    def deeper_explanation(self, payload: DeeperExplanationRequest) -> dict[str, Any]:
        explanation = self._generate_text(
            pipeline="deeper_explanation",
            field="explanation",
            system_prompt=(
                "You are an AI programming tutor. The learner just completed a drill.\n"
                "- Explain the concept in more depth than the drill did.\n"
                "- Cover why it works and one common pitfall."
            ),
            user_prompt=(
                f"concept={_compact_text(payload.concept, 220)}\n"
                f"drill_context={_compact_text(payload.drillContext, 1800)}"
            ),
        )
        return {"explanation": explanation}

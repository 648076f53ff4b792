from typing import Any, Callable

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, ValidationError

from app.api.deps import get_assistant_service, get_drill_generation_service
from app.core.errors import DojoError, ErrorKind
from app.services import assistant_service as assistant
from app.services.assistant_service import AssistantService
from app.services.drill_generation import (
    DrillFromPromptRequest,
    DrillGenerationService,
    DynamicDrillRequest,
)
from app.services.error_policy import build_structured_error_detail, http_exception_for
from app.services.pipeline_runtime import PipelineFailure


router = APIRouter(prefix="/api/genkit", tags=["genkit"])

DRILL_FALLBACK = "Failed to generate drill. The AI returned invalid data."
WORKOUT_FALLBACK = "Couldn't generate this workout mode. Please try again."


def _parse(model: type[BaseModel], body: dict[str, Any]) -> Any:
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        raise HTTPException(
            status_code=400,
            detail=build_structured_error_detail(
                error_code=ErrorKind.INVALID_INPUT.value,
                message=f"Invalid request body: {', '.join(fields) or 'body'}",
                retryable=False,
                detail=f"genkit_invalid_body:{','.join(fields)}",
            ),
        ) from exc


def _run_flow(call: Callable[[], dict[str, Any]], fallback: str) -> dict[str, Any]:
    try:
        return call()
    except PipelineFailure as failure:
        raise http_exception_for(failure, message=fallback) from failure


@router.post("/{slug}")
def run_genkit_flow(
    slug: str,
    body: dict[str, Any] = Body(default_factory=dict),
    assistant_service: AssistantService = Depends(get_assistant_service),
    generation: DrillGenerationService = Depends(get_drill_generation_service),
) -> dict[str, Any]:
    if slug == "testSimpleGeneration":
        payload = _parse(assistant.SimpleGenerationRequest, body)
        return _run_flow(lambda: assistant_service.simple_generation(payload), assistant.ANSWER_FALLBACK)

    if slug == "generateHint":
        payload = _parse(assistant.HintRequest, body)
        return _run_flow(lambda: assistant_service.hint(payload), assistant.HINT_FALLBACK)

    if slug == "generateClarification":
        payload = _parse(assistant.ClarificationRequest, body)
        return _run_flow(lambda: assistant_service.clarification(payload), assistant.CLARIFICATION_FALLBACK)

    if slug == "generateCodeCompletion":
        payload = _parse(assistant.CodeCompletionRequest, body)
        return _run_flow(lambda: assistant_service.code_completion(payload), assistant.COMPLETION_FALLBACK)

    if slug == "generateDeeperExplanation":
        payload = _parse(assistant.DeeperExplanationRequest, body)
        return _run_flow(lambda: assistant_service.deeper_explanation(payload), assistant.EXPLANATION_FALLBACK)

    if slug == "generateDrillFromPrompt":
        payload = _parse(DrillFromPromptRequest, body)
        return _run_flow(lambda: generation.drill_from_prompt(payload), DRILL_FALLBACK)

    if slug == "generateDynamicDrill":
        payload = _parse(DynamicDrillRequest, body)
        return _run_flow(lambda: generation.dynamic_drill(payload), WORKOUT_FALLBACK)

    raise DojoError(ErrorKind.NOT_FOUND, f"unknown_flow:{slug}", message=f"Unknown flow: {slug}")

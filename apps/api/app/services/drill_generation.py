import hashlib
import json
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from app.core.cache import TTLCache
from app.core.errors import DojoError, ErrorKind
from app.core.logging_utils import get_logger
from app.domain.ai import AIService
from app.domain.drills import (
    WorkoutMode,
    ensure_transformable,
    normalize_drill_content,
    total_blanks,
    validate_drill_content,
    workout_contract_issues,
)
from app.domain.drills.models import Difficulty, DrillBlock
from app.services.pipeline_runtime import run_ai_with_retry


logger = get_logger("drill_generation")

DRILL_JSON_SHAPE = """{
  "title": "string",
  "concept": "string",
  "difficulty": "Beginner" | "Intermediate" | "Advanced",
  "description": "string",
  "language": "python",
  "content": [
    {"type": "theory", "value": "string"},
    {"type": "code", "value": "code with ____ for each blank", "language": "python", "solution": ["one answer per blank"]},
    {"type": "mcq", "value": "question", "choices": ["choice1", "choice2", "choice3"], "answer": 0}
  ]
}"""

MOCK_DRILL = {
    "title": "Mock Python Loops Drill",
    "concept": "Python For Loops",
    "difficulty": "Beginner",
    "description": "Learn the basics of Python for loops with this interactive drill.",
    "language": "python",
    "content": [
        {
            "type": "theory",
            "value": "A for loop in Python is used to iterate over a sequence (like a list, tuple, or string).",
        },
        {
            "type": "code",
            "value": "for i in range(____):\n    print(i)",
            "language": "python",
            "solution": ["5"],
        },
        {
            "type": "mcq",
            "value": "What does range(5) generate?",
            "choices": ["0,1,2,3,4", "1,2,3,4,5", "0,1,2,3,4,5"],
            "answer": 0,
        },
    ],
}

WORKOUT_RULES = {
    WorkoutMode.CRAWL: (
        "Crawl mode: make the drill easier to approach by splitting it into MORE, SMALLER blanks.\n"
        "- The new drill must contain strictly more ____ markers than the original.\n"
        "- Each blank covers a single token or short expression.\n"
        "- Keep theory blocks; MCQ questions may be simplified."
    ),
    WorkoutMode.RUN: (
        "Run mode: make the drill harder by merging blanks into FEWER, LARGER ones.\n"
        "- The new drill must contain strictly fewer ____ markers than the original.\n"
        "- A blank may cover a whole statement or several lines.\n"
        "- MCQ questions may test edge cases."
    ),
}


class DrillFromPromptRequest(BaseModel):
    prompt: str = Field(min_length=1)


class GeneratedDrill(BaseModel):
    title: str = Field(min_length=1)
    concept: str = ""
    difficulty: Difficulty = "Beginner"
    description: str = ""
    language: str = "python"
    content: list[DrillBlock]


class WorkoutDrill(BaseModel):
    id: str | None = None
    title: str = ""
    concept: str = ""
    content: list[dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("content", "drill_content"),
    )


class DynamicDrillRequest(BaseModel):
    drill: WorkoutDrill
    workoutMode: WorkoutMode


def _normalize_difficulty(value: Any) -> str:
    text = str(value or "").strip().capitalize()
    if text in ("Beginner", "Intermediate", "Advanced"):
        return text
    return "Beginner"


class DrillGenerationService:
    def __init__(
        self,
        ai_service: AIService | None,
        *,
        cache: TTLCache,
        unavailable_reason: str = "ai_service_not_configured",
        max_attempts: int = 2,
    ) -> None:
        self.ai_service = ai_service
        self.cache = cache
        self.unavailable_reason = unavailable_reason
        self.max_attempts = max_attempts

    @property
    def configured(self) -> bool:
        return self.ai_service is not None

    def _require_ai_service(self) -> AIService:
        if self.ai_service is None:
            raise DojoError(ErrorKind.CONFIG_ERROR, f"ai_service_init_failed:{self.unavailable_reason}")
        return self.ai_service

    # Drill from prompt --------------------------------------------------
    def drill_from_prompt(self, payload: DrillFromPromptRequest) -> dict[str, Any]:
        if not self.configured:
            return {
                "rawCreativeText": "Mock drill generated because the AI provider is not configured",
                "finalJson": json.loads(json.dumps(MOCK_DRILL)),
                "mock": True,
            }

        ai_service = self._require_ai_service()

        def creative(_attempt: int) -> str:
            raw = ai_service.generate_json(
                system_prompt=(
                    "You are an expert AI programming tutor. A learner wants a practice drill.\n"
                    "Write the drill as plain prose: a title, the concept, a difficulty, a short description, "
                    "at least one theory block, one fill-in-the-blank code block and one multiple-choice question.\n"
                    'Format: {"drill_text": "string"}'
                ),
                user_prompt=f"user_prompt={payload.prompt.strip()[:1200]}",
            )
            text = raw.get("drill_text")
            if not isinstance(text, str) or not text.strip():
                raise DojoError(ErrorKind.EMPTY_OUTPUT, "drill_text_missing")
            return text.strip()

        drill_text, _ = run_ai_with_retry(creative, pipeline="drill_creative", max_attempts=self.max_attempts)

        def structure(attempt: int) -> dict[str, Any]:
            retry_note = "\nThe previous answer failed validation; follow the blank/solution rule exactly." if attempt > 1 else ""
            raw = ai_service.generate_json(
                system_prompt=(
                    "You are a JSON formatting expert. Convert the drill description into this JSON shape:\n"
                    f"{DRILL_JSON_SHAPE}\n"
                    "Every code block must have exactly one solution entry per ____ marker.\n"
                    "Return exactly one JSON object." + retry_note
                ),
                user_prompt=f"drill_text=\n---\n{drill_text}\n---",
            )
            return self._structure_generated_drill(raw)

        final_json, attempts = run_ai_with_retry(
            structure,
            pipeline="drill_structure",
            max_attempts=self.max_attempts,
        )
        logger.info("Generated drill from prompt", extra={"attempts": attempts, "title": final_json["title"]})
        return {"rawCreativeText": drill_text, "finalJson": final_json, "mock": False}

    def _structure_generated_drill(self, raw: dict[str, Any]) -> dict[str, Any]:
        language = str(raw.get("language") or "python").strip().lower()
        content = normalize_drill_content(raw.get("content"), default_language=language)
        issues = validate_drill_content(content)
        if issues:
            raise DojoError(ErrorKind.QUALITY_FAILED, "quality_validation_failed:" + ",".join(issues[:5]))

        try:
            drill = GeneratedDrill(
                title=str(raw.get("title") or "").strip(),
                concept=str(raw.get("concept") or "").strip(),
                difficulty=_normalize_difficulty(raw.get("difficulty")),
                description=str(raw.get("description") or "").strip(),
                language=language,
                content=content,
            )
        except ValidationError as exc:
            raise DojoError(ErrorKind.SCHEMA_MISMATCH, f"drill_schema_invalid:{exc.error_count()}") from exc
        return drill.model_dump()

    # Workout modes ------------------------------------------------------
    def workout_variant(
        self,
        drill_id: str | None,
        blocks: list[dict[str, Any]],
        mode: WorkoutMode,
    ) -> tuple[list[dict[str, Any]], bool]:
        """Return the content for ``mode`` and whether it came from the cache."""

        if mode is WorkoutMode.WALK:
            return blocks, False

        source_issues = validate_drill_content(blocks)
        if source_issues:
            raise DojoError(
                ErrorKind.INVALID_INPUT,
                "workout_source_invalid:" + ",".join(source_issues[:5]),
                message="This drill's content is invalid and cannot be adjusted.",
            )
        ensure_transformable(blocks, mode)

        cache_key = self._workout_cache_key(drill_id, blocks, mode) if drill_id else None
        if cache_key:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached, True

        ai_service = self._require_ai_service()
        source_json = json.dumps(blocks, ensure_ascii=False, indent=2)
        source_blanks = total_blanks(blocks)

        def call(attempt: int) -> list[dict[str, Any]]:
            retry_note = (
                f"\nThe previous answer broke the blank-count rule; the original has {source_blanks} blanks."
                if attempt > 1
                else ""
            )
            raw = ai_service.generate_json(
                system_prompt=(
                    "You are an expert AI programming tutor adjusting a drill's difficulty.\n"
                    f"{WORKOUT_RULES[mode]}\n"
                    "Every code block must have exactly one solution entry per ____ marker.\n"
                    'Format: {"content": [drill content blocks]}\n'
                    "Return exactly one JSON object." + retry_note
                ),
                user_prompt=f"original_blank_count={source_blanks}\noriginal_content=\n{source_json}",
            )
            variant = normalize_drill_content(raw.get("content"))
            issues = workout_contract_issues(blocks, variant, mode)
            if issues:
                raise DojoError(
                    ErrorKind.QUALITY_FAILED,
                    "workout_contract_violated:" + ",".join(issues[:5]),
                    message="Couldn't generate this workout mode. Please try again.",
                )
            return variant

        variant, attempts = run_ai_with_retry(call, pipeline="workout_generate", max_attempts=self.max_attempts)
        logger.info(
            "Generated workout variant",
            extra={
                "drill_id": drill_id,
                "mode": mode.value,
                "attempts": attempts,
                "blanks_before": source_blanks,
                "blanks_after": total_blanks(variant),
            },
        )
        if cache_key:
            self.cache.put(cache_key, variant)
        return variant, False

    @staticmethod
    def _workout_cache_key(drill_id: str, blocks: list[dict[str, Any]], mode: WorkoutMode) -> str:
        """Key a variant by drill id, mode and the exact source content it was checked against."""
        source = json.dumps(blocks, sort_keys=True, ensure_ascii=False, default=str)
        digest = hashlib.sha256(source.encode("utf-8")).hexdigest()[:16]
        return f"workout:{drill_id}:{mode.value}:{digest}"

    def dynamic_drill(self, payload: DynamicDrillRequest) -> dict[str, Any]:
        content, cached = self.workout_variant(payload.drill.id, payload.drill.content, payload.workoutMode)
        return {"drillContent": content, "workoutMode": payload.workoutMode.value, "cached": cached}

    def invalidate_workouts(self, drill_id: str) -> None:
        self.cache.invalidate_pattern(f"workout:{drill_id}:")

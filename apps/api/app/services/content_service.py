from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from app.core.cache import TTLCache
from app.core.errors import DojoError, ErrorKind
from app.core.logging_utils import get_logger
from app.domain.drills import (
    CodeSnippet,
    CodeSnippetCreateRequest,
    Drill,
    DrillCreateRequest,
    Note,
    NoteCreateRequest,
    next_review_date,
    validate_drill_content,
)
from app.services.repositories import ContentRepository


logger = get_logger("content")

DRILLS = "drills"
CODE_SNIPPETS = "code_snippets"
NOTES = "notes"


class AttemptRequest(BaseModel):
    attempts: int = Field(default=1, ge=1)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


class ContentService:
    """CRUD over drills, code snippets and notes.

    Per-user drill listings are cached and invalidated whenever that user's
    drills change.
    """

    def __init__(self, repository: ContentRepository, *, cache: TTLCache) -> None:
        self.repository = repository
        self.cache = cache

    @staticmethod
    def _drills_cache_key(user_id: str) -> str:
        return f"personal_drills:{user_id}"

    # Drills ---------------------------------------------------------------
    def create_drill(self, payload: DrillCreateRequest) -> Drill:
        issues = validate_drill_content(payload.content)
        if issues:
            raise DojoError(
                ErrorKind.INVALID_INPUT,
                "drill_content_invalid:" + ",".join(issues[:5]),
                message="Drill content is invalid: " + ", ".join(issues[:5]),
            )

        drill = Drill(id=_new_id(), createdAt=_now(), **payload.model_dump())
        self.repository.save(DRILLS, drill.id, drill.model_dump(mode="json"))
        self.cache.invalidate(self._drills_cache_key(drill.userId))
        logger.info("Drill created", extra={"drill_id": drill.id, "user_id": drill.userId})
        return drill

    def get_drill(self, drill_id: str) -> Drill:
        document = self.repository.get(DRILLS, drill_id)
        if document is None:
            raise DojoError(ErrorKind.NOT_FOUND, f"drill_not_found:{drill_id}")
        return Drill.model_validate(document)

    def list_drills(self, user_id: str) -> list[Drill]:
        key = self._drills_cache_key(user_id)
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        drills = [Drill.model_validate(doc) for doc in self.repository.list_for_user(DRILLS, user_id)]
        self.cache.put(key, list(drills))
        return drills

    def delete_drill(self, drill_id: str) -> None:
        drill = self.get_drill(drill_id)
        self.repository.delete(DRILLS, drill_id)
        self.cache.invalidate(self._drills_cache_key(drill.userId))
        self.cache.invalidate_pattern(f"workout:{drill_id}:")
        logger.info("Drill deleted", extra={"drill_id": drill_id, "user_id": drill.userId})

    def record_attempt(self, drill_id: str, payload: AttemptRequest) -> dict[str, Any]:
        self.get_drill(drill_id)
        return {
            "drillId": drill_id,
            "attempts": payload.attempts,
            "nextReviewAt": next_review_date(payload.attempts).isoformat(),
        }

    # Code snippets ------------------------------------------------------
    def create_code_snippet(self, payload: CodeSnippetCreateRequest) -> CodeSnippet:
        snippet = CodeSnippet(id=_new_id(), createdAt=_now(), **payload.model_dump())
        self.repository.save(CODE_SNIPPETS, snippet.id, snippet.model_dump(mode="json"))
        return snippet

    def list_code_snippets(self, user_id: str) -> list[CodeSnippet]:
        return [CodeSnippet.model_validate(doc) for doc in self.repository.list_for_user(CODE_SNIPPETS, user_id)]

    # Notes --------------------------------------------------------------
    def create_note(self, payload: NoteCreateRequest) -> Note:
        if payload.drillId is not None:
            self.get_drill(payload.drillId)
        note = Note(id=_new_id(), createdAt=_now(), **payload.model_dump())
        self.repository.save(NOTES, note.id, note.model_dump(mode="json"))
        return note

    def list_notes(self, user_id: str) -> list[Note]:
        return [Note.model_validate(doc) for doc in self.repository.list_for_user(NOTES, user_id)]

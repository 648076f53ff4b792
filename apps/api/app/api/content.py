from typing import Any

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from app.api.deps import get_content_service, get_drill_generation_service
from app.domain.drills import (
    CodeSnippet,
    CodeSnippetCreateRequest,
    Drill,
    DrillCreateRequest,
    Note,
    NoteCreateRequest,
    WorkoutMode,
)
from app.services.content_service import AttemptRequest, ContentService
from app.services.drill_generation import DrillGenerationService


router = APIRouter(prefix="/api", tags=["content"])


class WorkoutRequest(BaseModel):
    workoutMode: WorkoutMode


@router.post("/drills", response_model=Drill, status_code=201)
def create_drill(payload: DrillCreateRequest, service: ContentService = Depends(get_content_service)) -> Drill:
    return service.create_drill(payload)


@router.get("/drills", response_model=list[Drill])
def list_drills(userId: str, service: ContentService = Depends(get_content_service)) -> list[Drill]:
    return service.list_drills(userId)


@router.get("/drills/{drill_id}", response_model=Drill)
def get_drill(drill_id: str, service: ContentService = Depends(get_content_service)) -> Drill:
    return service.get_drill(drill_id)


@router.delete("/drills/{drill_id}", status_code=204)
def delete_drill(drill_id: str, service: ContentService = Depends(get_content_service)) -> Response:
    service.delete_drill(drill_id)
    return Response(status_code=204)


@router.post("/drills/{drill_id}/attempts")
def record_attempt(
    drill_id: str,
    payload: AttemptRequest,
    service: ContentService = Depends(get_content_service),
) -> dict[str, Any]:
    return service.record_attempt(drill_id, payload)


@router.post("/drills/{drill_id}/workout")
def drill_workout(
    drill_id: str,
    payload: WorkoutRequest,
    content: ContentService = Depends(get_content_service),
    generation: DrillGenerationService = Depends(get_drill_generation_service),
) -> dict[str, Any]:
    drill = content.get_drill(drill_id)
    blocks = [block.model_dump() for block in drill.content]
    variant, cached = generation.workout_variant(drill.id, blocks, payload.workoutMode)
    return {"drillId": drill.id, "workoutMode": payload.workoutMode.value, "drillContent": variant, "cached": cached}


@router.post("/code-snippets", response_model=CodeSnippet, status_code=201)
def create_code_snippet(
    payload: CodeSnippetCreateRequest,
    service: ContentService = Depends(get_content_service),
) -> CodeSnippet:
    return service.create_code_snippet(payload)


@router.get("/code-snippets", response_model=list[CodeSnippet])
def list_code_snippets(userId: str, service: ContentService = Depends(get_content_service)) -> list[CodeSnippet]:
    return service.list_code_snippets(userId)


@router.post("/notes", response_model=Note, status_code=201)
def create_note(payload: NoteCreateRequest, service: ContentService = Depends(get_content_service)) -> Note:
    return service.create_note(payload)


@router.get("/notes", response_model=list[Note])
def list_notes(userId: str, service: ContentService = Depends(get_content_service)) -> list[Note]:
    return service.list_notes(userId)

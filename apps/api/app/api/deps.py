from fastapi import Request

from app.services.assistant_service import AssistantService
from app.services.content_service import ContentService
from app.services.drill_generation import DrillGenerationService


def get_content_service(request: Request) -> ContentService:
    return request.app.state.content_service


def get_assistant_service(request: Request) -> AssistantService:
    return request.app.state.assistant_service


def get_drill_generation_service(request: Request) -> DrillGenerationService:
    return request.app.state.drill_generation_service

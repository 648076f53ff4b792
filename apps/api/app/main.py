from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.content import router as content_router
from app.api.genkit import router as genkit_router
from app.core.cache import TTLCache
from app.core.config import Settings, get_settings
from app.core.errors import DojoError
from app.core.logging_utils import configure_logging, get_logger
from app.domain.ai import build_ai_service
from app.services.assistant_service import AssistantService
from app.services.content_service import ContentService
from app.services.drill_generation import DrillGenerationService
from app.services.error_policy import (
    build_error_payload,
    build_http_error_payload,
    build_unexpected_error_payload,
    http_exception_for,
)
from app.services.pipeline_runtime import PipelineFailure
from app.services.repositories import ContentRepository, InMemoryContentRepository


logger = get_logger("api")


def install_services(app: FastAPI, settings: Settings, repository: ContentRepository | None = None) -> None:
    """Build the service graph and attach it to ``app.state``."""

    try:
        ai_service = build_ai_service(settings)
        unavailable_reason = ""
    except DojoError as exc:
        ai_service = None
        unavailable_reason = exc.reason
        logger.warning("AI service unavailable", extra={"reason": exc.reason})

    cache = TTLCache(default_ttl=settings.drill_cache_ttl_sec)
    app.state.settings = settings
    app.state.cache = cache
    app.state.content_service = ContentService(repository or InMemoryContentRepository(), cache=cache)
    app.state.assistant_service = AssistantService(
        ai_service,
        unavailable_reason=unavailable_reason,
        max_attempts=settings.drill_generation_max_attempts,
    )
    app.state.drill_generation_service = DrillGenerationService(
        ai_service,
        cache=cache,
        unavailable_reason=unavailable_reason,
        max_attempts=settings.workout_max_attempts,
    )


def _trace_id(request: Request) -> str:
    return request.headers.get("x-trace-id") or uuid4().hex


def create_app(settings: Settings | None = None, repository: ContentRepository | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        install_services(app, settings, repository)
        logger.info("Dojo API started", extra={"env": settings.env, "ai_provider": settings.ai_provider})
        yield
        app.state.cache.clear()
        logger.info("Dojo API stopped")

    app = FastAPI(
        title="OmniCode Dojo API",
        version="0.1.0",
        description="Coding drills with an AI tutor and adaptive workout modes",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health_check() -> dict[str, str]:
        return {"status": "ok", "env": settings.env}

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
        payload = build_http_error_payload(exc, _trace_id(request))
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(DojoError)
    async def handle_dojo_error(request: Request, exc: DojoError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=build_error_payload(exc, _trace_id(request)))

    @app.exception_handler(PipelineFailure)
    async def handle_pipeline_failure(request: Request, exc: PipelineFailure) -> JSONResponse:
        http_exc = http_exception_for(exc)
        return JSONResponse(status_code=http_exc.status_code, content=build_http_error_payload(http_exc, _trace_id(request)))

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        trace_id = _trace_id(request)
        logger.exception("Unhandled error", extra={"trace_id": trace_id, "path": request.url.path})
        return JSONResponse(status_code=500, content=build_unexpected_error_payload(trace_id))

    app.include_router(content_router)
    app.include_router(genkit_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("app.main:app", host=_settings.api_host, port=_settings.api_port)

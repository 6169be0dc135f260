"""
FastAPI application entry point.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from voicesurvey.admin.router import router as admin_router
from voicesurvey.config import get_settings
from voicesurvey.shared.database import get_database_manager
from voicesurvey.shared.exceptions import (
    AppException,
    MalformedCallbackPayload,
    RecordingFetchError,
    RecordingNotFound,
    StoreUnavailable,
)
from voicesurvey.shared.logging import get_logger, setup_logging
from voicesurvey.survey.questions import QuestionCatalog, load_question_catalog
from voicesurvey.telephony.recordings import router as recordings_router
from voicesurvey.telephony.webhooks.router import router as call_flow_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Start-up fails (CatalogEmpty / CatalogLoadError) when no questions can be
    served; there is no per-request fallback for a missing catalog.
    """
    setup_logging()
    settings = get_settings()

    logger.info("Application starting", extra={"env": settings.app_env})

    if getattr(app.state, "questions", None) is None:
        app.state.questions = load_question_catalog(settings.questions_file)

    db_manager = get_database_manager()
    if settings.database_auto_create:
        await db_manager.create_all()
        logger.info("Participant tables ensured")

    yield

    logger.info("Shutting down application")
    await db_manager.close()
    logger.info("Application shutdown complete")


def _error_content(exc: AppException) -> dict:
    return {"detail": {"code": exc.code, "message": exc.message, **exc.details}}


def create_app(questions: QuestionCatalog | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        questions: Optional pre-loaded catalog; otherwise the lifespan loads
            ``Settings.questions_file``.
    """
    settings = get_settings()

    app = FastAPI(
        title="Automated Voice Survey",
        description="Call-flow webhook for automated voice surveys",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.questions = questions

    # Map domain exceptions to HTTP responses
    @app.exception_handler(MalformedCallbackPayload)
    async def _malformed(_: Request, exc: MalformedCallbackPayload) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_content(exc))

    @app.exception_handler(StoreUnavailable)
    async def _store_unavailable(_: Request, exc: StoreUnavailable) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_content(exc),
        )

    @app.exception_handler(RecordingNotFound)
    async def _recording_not_found(_: Request, exc: RecordingNotFound) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_content(exc))

    @app.exception_handler(RecordingFetchError)
    async def _recording_fetch(_: Request, exc: RecordingFetchError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=_error_content(exc))

    # Request validation (FastAPI/Pydantic) -> consistent 422 payload
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
        return JSONResponse(
            status_code=422,
            content={
                "detail": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "errors": errors,
                }
            },
        )

    app.include_router(call_flow_router)
    app.include_router(admin_router)
    app.include_router(recordings_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()

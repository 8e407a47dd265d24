"""
FastAPI application entry point.

Builds the detection API: routers, CORS, and the mapping from
DetectionError codes to HTTP statuses. create_app() is a factory so tests
can build fresh apps with dependency overrides.

For local development:
    uvicorn ai_content_detector.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.dependencies import reset_detector
from .api.routes import detection, health
from .config.settings import get_settings
from .core.errors import (
    AnalysisInProgressError,
    ConfigurationError,
    DetectionError,
    InputValidationError,
    MalformedResponseError,
    UpstreamRequestError,
    VideoExtractionError,
)

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
ERROR_STATUS_CODES: list[tuple[type[DetectionError], int]] = [
    (InputValidationError, 400),
    (AnalysisInProgressError, 409),
    (VideoExtractionError, 422),
    (UpstreamRequestError, 502),
    (MalformedResponseError, 502),
    (ConfigurationError, 500),
]


def status_code_for(exc: DetectionError) -> int:
    for error_type, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Refuses to start without the model credential: there is no useful
    degraded mode when every request needs it.
    """
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info(
        "Content detector API starting",
        extra={
            "version": settings.api_version,
            "video_mock_mode": settings.video_mock_mode,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing_fields)}")

    yield

    reset_detector()
    logger.info("Content detector API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Judges whether content is AI-generated.

        ## Endpoints

        - `POST /api/v1/detect/text`: JSON `{"text": "..."}`
        - `POST /api/v1/detect/image`: multipart upload `file`
        - `POST /api/v1/detect/video`: multipart upload `file`, optional `frame_count`

        Each returns a determination, a 0-100 confidence, and a rationale.

        ## Authentication

        All detection endpoints require an API key in the `X-API-Key` header.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        detection.router,
        prefix="/api/v1/detect",
        tags=["Detection"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": settings.api_title,
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(DetectionError)
    async def detection_error_handler(request: Request, exc: DetectionError):
        """
        Single conversion point from detection failures to responses.

        The body keeps the error's code and retryable flag so clients can
        tell a bad upload from a flaky model without parsing messages.
        """
        status_code = status_code_for(exc)
        log = logger.warning if status_code < 500 else logger.error
        log(
            "Detection request failed",
            extra={
                "path": request.url.path,
                "code": exc.code,
                "error": str(exc),
            },
        )

        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. We log the full
        error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# This is what uvicorn imports
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "ai_content_detector.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )

"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Long-lived clients are tied to the app's lifespan, not to import time

For local development:
    uvicorn studyplanner.main:app --reload

For production:
    gunicorn studyplanner.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.dependencies import build_services
from .api.routes import health, resources, schedules, uploads
from .config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Pass settings explicitly in tests; otherwise they come from the
    environment via get_settings().
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Build the long-lived clients on startup, drop them on shutdown.
        """
        logger.info(
            "StudyPlanner API starting",
            extra={
                "version": settings.api_version,
                "mock_mode": {
                    "snowflake": settings.snowflake_mock_mode,
                    "r2": settings.r2_mock_mode,
                }
            }
        )

        missing_fields = settings.validate_required_fields()
        if missing_fields:
            # Endpoints needing a missing backend answer 503
            logger.error(
                "Missing required configuration",
                extra={"missing_fields": missing_fields}
            )

        app.state.services = build_services(settings)

        yield

        app.state.services = None
        logger.info("StudyPlanner API shutting down")

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Study schedules with file attachments.

        ## Authentication

        Requests are forwarded by the identity provider with an API key in
        `X-API-Key` and the signed-in user's id in `X-User-Id`.

        ## Uploading a file

        1. `GET /api/v1/uploads/credential?fileName=...&scheduleId=...`
           returns a signed upload URL and the file URL it will produce.
        2. `PUT` the file bytes to the signed URL.
        3. `POST /api/v1/uploads/finalize` with the file metadata to attach
           it to the schedule. Don't retry this blindly; each call adds a
           resource.

        ## Downloading a file

        `GET /api/v1/uploads/read-credential?fileUrl=...&scheduleId=...`
        returns a signed URL valid for a few minutes.
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

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        schedules.router,
        prefix="/api/v1/schedules",
        tags=["Schedules"],
    )

    app.include_router(
        uploads.router,
        prefix="/api/v1/uploads",
        tags=["Uploads"],
    )

    app.include_router(
        resources.router,
        prefix="/api/v1/resources",
        tags=["Resources"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "StudyPlanner API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Missing or malformed parameters are a plain 400 for our clients."""
        logger.info(
            "Rejected invalid request",
            extra={"path": request.url.path, "errors": exc.errors()},
        )

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Invalid request",
                "errors": [
                    {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
                    for e in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        We log the full error server-side but return a generic message.
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
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
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


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "studyplanner.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )

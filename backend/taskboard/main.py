"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from taskboard.api import router as api_router
from taskboard.config import Settings, get_settings
from taskboard.db import close_db, create_engine, create_session_factory, init_db
from taskboard.exceptions import (
    NotFoundError,
    RepositoryFailureError,
    TaskboardError,
    ValidationFailedError,
)
from taskboard.middleware import RequestContextMiddleware, configure_logging
from taskboard.repositories import Repositories, build_repositories

logger = structlog.get_logger()


def error_status(error: TaskboardError) -> int:
    """HTTP status for a taskboard error."""
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    elif isinstance(error, ValidationFailedError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(error, RepositoryFailureError):
        return status.HTTP_502_BAD_GATEWAY
    else:
        return status.HTTP_500_INTERNAL_SERVER_ERROR


async def taskboard_error_handler(request: Request, exc: TaskboardError) -> ORJSONResponse:
    status_code = error_status(exc)
    log = logger.error if status_code >= 500 else logger.info
    log("request_rejected", error_code=exc.code, error=exc.message, status_code=status_code)
    body = {"error": exc.code, "message": exc.message}
    if isinstance(exc, ValidationFailedError) and exc.field:
        body["field"] = exc.field
    return ORJSONResponse(status_code=status_code, content=body)


def create_app(
    settings: Settings | None = None,
    repositories: Repositories | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``repositories`` replaces the configured storage, which is how tests
    run the API against pre-seeded in-memory stores.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, json_output=settings.environment == "production")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager for startup/shutdown events."""
        # Startup
        logger.info(
            "taskboard_starting",
            version=settings.app_version,
            storage=settings.storage_backend,
        )
        engine = None
        if repositories is not None:
            app.state.repositories = repositories
        elif settings.storage_backend == "sql":
            engine = create_engine(settings)
            await init_db(engine)
            app.state.repositories = build_repositories(settings, create_session_factory(engine))
            logger.info("database_initialized")
        else:
            app.state.repositories = build_repositories(settings)

        yield

        # Shutdown
        if engine is not None:
            await close_db(engine)
            logger.info("database_closed")
        logger.info("taskboard_stopped")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Project and task tracking with kanban boards and team analytics",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Add middleware (order matters - last added is first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    app.add_exception_handler(TaskboardError, taskboard_error_handler)

    # Include API router
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()

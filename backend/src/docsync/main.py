"""DocuSync Backend - Main FastAPI Application

Hosts the inbound mail webhooks plus health and metrics endpoints. Message
processing runs in the Celery worker (docsync.workers.celery_app).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .api.v1.intake.router import router as intake_router
from .config import Settings, get_settings
from .domain.errors import DocSyncError
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: Settings = app.state.settings
    logger.info("DocuSync API starting up...")
    logger.info(f"Environment: {config.ENVIRONMENT}, gateway backend: {config.GATEWAY_BACKEND}")

    yield

    logger.info("DocuSync API shutting down...")


async def docsync_exception_handler(request: Request, exc: DocSyncError) -> JSONResponse:
    """Handle domain errors that escaped an endpoint.

    The reason is logged; the client only sees a generic message.
    """
    logger.error(
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Operation failed"},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions without exposing details."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Operation failed"},
    )


def create_app(config: Settings = None) -> FastAPI:
    """Application factory.

    Args:
        config: Settings to use (defaults to the cached environment settings)
    """
    config = config or get_settings()
    configure_logging(level=config.LOG_LEVEL, json_format=config.LOG_JSON)

    docs_enabled = config.ENVIRONMENT != "production"
    app = FastAPI(
        title="DocuSync API",
        description="Email intake for client document requirements",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = config

    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DocSyncError, docsync_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(observability_router)
    app.include_router(intake_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docsync.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().ENVIRONMENT == "development",
        log_level=get_settings().LOG_LEVEL.lower(),
    )

"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deploy_engine.api.middleware.correlation import CorrelationIdMiddleware
from deploy_engine.api.routes import environment_routes, health_routes
from deploy_engine.api.schemas.error_schemas import ErrorResponse
from deploy_engine.config import get_settings, Settings
from deploy_engine.domain.models.database import DatabaseError
from deploy_engine.domain.models.router import RouterError
from deploy_engine.infrastructure.observability.tracing import setup_tracing


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    logger.info(
        "application_starting",
        environment=settings.environment.value,
        debug=settings.debug,
        workspace_root_dir=settings.engine.workspace_root_dir,
    )
    setup_tracing(settings.observability)

    yield

    logger.info("application_shutdown_complete")


async def _invalid_service_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.warning("invalid_service_definition", error_type=type(exc).__name__, error=str(exc))
    body = ErrorResponse(error=type(exc).__name__, message=str(exc))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Deploy Engine",
        description="Deploys applications, routers and databases with Helm, Terraform and kubectl",
        version="0.1.0",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    # Middleware (order matters - first added = outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(DatabaseError, _invalid_service_handler)
    app.add_exception_handler(RouterError, _invalid_service_handler)

    # Routes
    app.include_router(health_routes.router)
    app.include_router(environment_routes.router, prefix=settings.api_prefix)

    return app

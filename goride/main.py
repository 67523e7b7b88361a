"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from goride.api.v1.router import api_router
from goride.config import settings
from goride.core.backends import build_collaborators
from goride.middleware.error_handler import register_exception_handlers
from goride.middleware.logging import LoggingMiddleware, configure_logging
from goride.services.home_service import HomeSessionRegistry

# Configure logging
configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Wires the collaborators at startup (unless already provided on
    ``app.state``) and releases every live rides subscription at shutdown.
    """
    logger.info("application_startup", environment=settings.environment, backend=settings.backend)

    if getattr(app.state, "document_store", None) is None:
        auth_provider, document_store = build_collaborators(settings)
        app.state.auth_provider = auth_provider
        app.state.document_store = document_store
        app.state.home_registry = HomeSessionRegistry(document_store)

    yield

    logger.info("application_shutdown")
    app.state.home_registry.close_all()
    logger.info("ride_subscriptions_closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Ride booking backend: accounts, live ride lists and profiles",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.api_v1_prefix)

# Setup Prometheus instrumentation
Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/docs", "/redoc", "/openapi.json"],
    inprogress_name="http_requests_inprogress",
    inprogress_labels=True,
).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """
    Root endpoint.

    Returns:
        Welcome message
    """
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "goride.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )

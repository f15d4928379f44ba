"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from spstorage.api import cron, oauth, storage
from spstorage.config import get_settings
from spstorage.core.logging import (
    configure_logging,
    generate_request_id,
    get_logger,
    request_id_ctx,
)

settings = get_settings()

# Configure structured logging
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug,
    )

    if not settings.is_graph_configured:
        logger.warning(
            "graph_client_not_configured",
            message="Token sweep will be skipped. "
            "Set GRAPH_CLIENT_ID and GRAPH_CLIENT_SECRET.",
        )

    yield

    logger.info("application_shutdown")


app = FastAPI(
    title="SharePoint Storage API",
    description=(
        "Consent, token maintenance and mount checks for read-only "
        "SharePoint document library storage."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# Request correlation ID middleware
@app.middleware("http")
async def add_request_id_middleware(request, call_next):
    """Add correlation ID to each request."""
    request_id = generate_request_id()
    request_id_ctx.set(request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Include routers
app.include_router(oauth.router, prefix="/api/v1")
app.include_router(cron.router, prefix="/api/v1")
app.include_router(storage.router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}

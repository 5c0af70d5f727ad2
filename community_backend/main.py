"""
FastAPI application entry point.

Initializes FastAPI app, registers routers, adds middleware, and configures lifespan.

Dependencies: fastapi, community_backend.api, community_backend.observability, community_backend.configs
System role: Application initialization and configuration
"""

from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from community_backend.configs import get_settings
from community_backend.api import api_router
from community_backend.boundary.db import dispose_engine
from community_backend.observability.logger import configure_logging
from community_backend.observability.middleware import (
    RequestLoggingMiddleware,
    CorrelationMiddleware,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Configures logging on startup and releases the database pool on shutdown.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        "Application startup: logging configured",
        extra={"environment": settings.environment},
    )

    yield

    await dispose_engine()
    logger.info("Application shutdown")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Community Membership API",
        description="Paid community memberships on Stripe Connect with promotional platform fees",
        version="0.1.0",
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
        lifespan=lifespan,
    )

    # Add observability middleware (added first = last to execute)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register API routes
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "community_backend.main:app",
        host="localhost",
        port=8082,
        reload=True,
    )

"""
FastAPI Main Application - Search API entry point.

Run with: uvicorn harusearch.interfaces.api.main:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from harusearch import __version__
from harusearch.config import get_settings

from .deps import cleanup_services, init_services
from .middleware import ErrorHandlerMiddleware, RateLimitMiddleware, RequestContextMiddleware
from .routes import chats, health, history, search, tags

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info("Starting HaruSearch API...")
    logger.info("  Database: %s", settings.db_path)
    logger.info("  Pool size: %d, query timeout: %.1fs", settings.db_pool_size, settings.db_query_timeout)

    await init_services()
    logger.info("  Services initialized")

    yield

    logger.info("Shutting down HaruSearch API...")
    await cleanup_services()


def create_app() -> FastAPI:
    """Create FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="HaruSearch API",
        description="Relevance-ranked search over companions, profiles, messages and checkpoints",
        version=__version__,
        debug=settings.api_debug,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Starlette wraps each added middleware around the previous ones,
    # so the last one added runs first.
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.api_rate_limit_rpm)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    app.include_router(health.router, tags=["Health"])
    # History before search so /api/search/history is not read as an entity path
    app.include_router(history.router, prefix="/api/search/history", tags=["History"])
    app.include_router(search.router, prefix="/api/search", tags=["Search"])
    app.include_router(chats.router, prefix="/api/chats", tags=["Chats"])
    app.include_router(tags.router, prefix="/api/tags", tags=["Tags"])

    return app


app = create_app()

#!/usr/bin/env python3
"""
Matching Engine API - FastAPI Application

Serves stored matches, records status changes and feedback, and accepts
manual generation requests.

Usage:
    python main.py serve

Then open:
    - http://localhost:3003/docs - API Documentation (Swagger UI)
    - http://localhost:3003/redoc - Alternative API Documentation
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Response

from core.errors import MatchingError
from core.metrics import CONTENT_TYPE_LATEST, render_latest
from .config import get_config
from .dependencies import close_context
from .exceptions import (
    matching_exception_handler,
    http_exception_handler,
    general_exception_handler
)
from .routers import (
    generation_router,
    matches_router,
    stats_router
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_context()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Matching Engine API",
        description="Compatibility matches between subjects and opportunities",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Register exception handlers
    app.add_exception_handler(MatchingError, matching_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(generation_router)
    app.include_router(matches_router)
    app.include_router(stats_router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "matching-engine"}

    @app.get("/metrics", include_in_schema=False)
    def metrics():
        """Prometheus metrics."""
        return Response(content=render_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()


def main():
    """Run the web server."""
    import uvicorn

    config = get_config()
    logger.info(f"Starting Matching Engine API on {config.web.host}:{config.web.port}")
    logger.info(f"API Docs: http://{config.web.host}:{config.web.port}/docs")

    uvicorn.run(
        "web.backend.app:app",
        host=config.web.host,
        port=config.web.port,
        reload=False,
        log_level=config.logging.level.lower()
    )


if __name__ == "__main__":
    main()

"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from events_indexer.api.dependencies import cleanup_dependencies
from events_indexer.api.routes import authors, health, indexing, posts, topics
from events_indexer.config.settings import get_settings
from events_indexer.observability.logging import bound_context

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Events indexer API starting up")
    yield
    logger.info("Events indexer API shutting down")
    await cleanup_dependencies()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "indexing", "description": "Post ingestion and indexing statistics"},
        {"name": "topics", "description": "Topic registry, matching and topic analytics"},
        {"name": "authors", "description": "Cross-platform authors"},
        {"name": "posts", "description": "Indexed post feed"},
    ]

    app = FastAPI(
        title="Events Indexer API",
        description="""
Indexes social posts about the Stellar ecosystem and serves topic analytics.

## Authentication

Requires `X-API-KEY` header for all requests except `/health` when
`API_KEYS` is set.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )

    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )

    # Request logging and correlation ID
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start_time = time.perf_counter()

        with bound_context(request_id=request_id):
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(indexing.router, tags=["indexing"])
    app.include_router(topics.router, tags=["topics"])
    app.include_router(authors.router, tags=["authors"])
    app.include_router(posts.router, tags=["posts"])

    return app

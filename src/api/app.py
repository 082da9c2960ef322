"""
FastAPI Application Factory.

Usage:
    # Development
    uvicorn api.app:create_app --factory --reload

    # Production
    uvicorn api.app:app --host 0.0.0.0 --port 8080 --workers 4
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from core.errors import (
    FlairError,
    InvalidInputError,
    UnauthenticatedError,
    UpstreamUnavailableError,
)
from core.logging import configure_logging, get_logger
from core.middleware import RequestTracingMiddleware


logger = get_logger(__name__)

_ERROR_STATUS = (
    (InvalidInputError, 400),
    (UnauthenticatedError, 401),
    (UpstreamUnavailableError, 503),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Startup configures logging; services are built lazily on first request.
    """
    settings = get_settings()

    configure_logging(
        json_logs=settings.is_production,
        log_level="DEBUG" if settings.debug else "INFO",
    )

    logger.info(
        "Starting discovery API",
        environment=settings.environment,
        port=settings.port,
        cache_enabled=settings.redis_enabled,
    )

    yield

    logger.info("Shutting down discovery API")


def status_for(error: FlairError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


async def flair_error_handler(request: Request, exc: FlairError) -> JSONResponse:
    status_code = status_for(exc)
    logger.warning(
        "Request failed",
        error_code=exc.code,
        status_code=status_code,
        error=exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.message, "code": exc.code, "detail": exc.detail},
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    app = FastAPI(
        title="Flair Discovery API",
        description="""
        Fashion discovery backend: interaction tracking, preference
        aggregation, personalized feeds and multi-provider product search.

        ## Main Endpoints

        - `/api/events/track` - Record user interactions
        - `/api/preferences` - Preference snapshot (read / recompute)
        - `/api/feed` - Personalized discovery feed
        - `/api/products/search` - Deduplicated product search
        - `/api/community/*` - Community posts

        ## Health Checks

        - `/health`, `/health/detailed`, `/ready`, `/live`
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # =========================================================================
    # Middleware (order matters - first added = outermost)
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request tracing (adds X-Request-ID, logs timing)
    app.add_middleware(RequestTracingMiddleware)

    app.add_exception_handler(FlairError, flair_error_handler)

    # =========================================================================
    # Routes
    # =========================================================================

    from api.routes.health import router as health_router
    app.include_router(health_router, tags=["Health"])

    from api.routes.events import router as events_router
    app.include_router(events_router)

    from api.routes.preferences import router as preferences_router
    app.include_router(preferences_router)

    from api.routes.feed import router as feed_router
    app.include_router(feed_router)

    from api.routes.products import router as products_router
    app.include_router(products_router)

    from api.routes.community import router as community_router
    app.include_router(community_router)

    return app


# Default app instance for uvicorn
# Usage: uvicorn api.app:app
app = create_app()

# =============================================================================
# app/main.py - Application Entry Point
# =============================================================================
# Builds the storefront server: a FastAPI application hosting the five API
# route groups, wrapped in the request pipeline that applies security
# headers, rate limiting, CORS, body decoding, static assets, page routing
# and error normalization to every request.
#
# Usage:
#   uvicorn app.main:app --port 3000
#   storefront-server
# =============================================================================

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from app.config import Settings, get_settings
from app.pipeline import ErrorNormalizer, RateLimiter, RequestPipeline, build_stages
from app.routers import RouteGroup, default_route_groups

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_lifespan(app_settings: Settings, limiter: RateLimiter):
    """Create the lifespan handler for one application instance."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: log where the portals live.
        Shutdown: drop the in-memory rate limit windows.
        """
        port = app_settings.PORT
        logger.info(f"Starting storefront server in {app_settings.NODE_ENV} mode")
        if not Path(app_settings.PUBLIC_DIR).is_dir():
            logger.warning(f"Public directory {app_settings.PUBLIC_DIR} does not exist")
        logger.info(f"Server running on port {port}")
        logger.info(f"Customer Portal: http://localhost:{port}")
        logger.info(f"Admin Portal: http://localhost:{port}/admin")

        yield

        logger.info("Shutting down storefront server")
        limiter.reset()

    return lifespan


def create_app(
    app_settings: Optional[Settings] = None,
    rate_limiter: Optional[RateLimiter] = None,
    route_groups: Optional[dict[str, RouteGroup]] = None,
) -> FastAPI:
    """
    Build a storefront application.

    Args:
        app_settings: Settings to use (defaults to the environment)
        rate_limiter: Shared limiter (defaults to one sized from settings)
        route_groups: API route groups keyed by name; register handlers on
            their routers before calling this

    Returns:
        FastAPI: The application, pipeline included
    """
    app_settings = app_settings or get_settings()
    if rate_limiter is None:
        rate_limiter = RateLimiter(
            window_seconds=app_settings.RATE_LIMIT_WINDOW_SECONDS,
            max_requests=app_settings.RATE_LIMIT_MAX_REQUESTS,
        )
    groups = route_groups if route_groups is not None else default_route_groups()
    normalizer = ErrorNormalizer(production=app_settings.is_production)

    app = FastAPI(
        title="Storefront Server",
        description="Customer portal, admin portal and storefront API.",
        version="1.0.0",
        # Every non-API path belongs to the pages and the SPA fallback
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=build_lifespan(app_settings, rate_limiter),
    )
    app.state.settings = app_settings
    app.state.rate_limiter = rate_limiter
    app.state.route_groups = groups

    # =========================================================================
    # Routers
    # =========================================================================

    for group in groups.values():
        app.include_router(group.router, prefix=group.prefix)

    # =========================================================================
    # Exception Handlers
    # =========================================================================
    # Framework errors raised inside a route group get the same shape as
    # pipeline errors. Everything else propagates to the pipeline.

    app.add_exception_handler(HTTPException, normalizer.handle_framework_exception)
    app.add_exception_handler(RequestValidationError, normalizer.handle_framework_exception)

    # =========================================================================
    # Middleware
    # =========================================================================

    app.add_middleware(
        RequestPipeline,
        stages=build_stages(app_settings, rate_limiter, groups.values()),
        normalizer=normalizer,
    )

    return app


app = create_app(settings)


def run() -> None:
    """Serve the application with uvicorn on HOST:PORT."""
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()

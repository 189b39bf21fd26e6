"""
Tourbook Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(config) assembles middleware, exception handlers and routers.
Who:   uvicorn imports the module-level `app` (uvicorn tourbook.main:app);
       tests call create_app() with their own Settings.

Request pipeline (outermost first):
    ProxyHeaders      client IP from X-Forwarded-For      (TRUST_PROXY)
    RequestID         X-Request-ID in and out
    CORS              Access-Control-Allow-Origin: *      + preflight
    StaticFiles       ./public
    SecurityHeaders   CSP, HSTS, X-Frame-Options, ...
    AccessLog         one line per request                 (NODE_ENV=development)
    RateLimit         100 requests / hour / IP on /api
    BodyParser        JSON + urlencoded, 10 KB
    Sanitize          strip $/dotted keys, escape HTML
    ParameterPollution  last value wins, whitelist keeps duplicates
    GZip              responses >= 1000 bytes
    UnhandledError    uncaught exceptions → 500 payload
    Routes            /, /api/v1/{tours,users,reviews,bookings}, /health
    Catch-all         OPTIONS → 204, trailing slash → 307 to the route,
                      otherwise 404 "Can't find <url> on this server!"

Starlette runs middleware in REVERSE order of add_middleware(), so the
factory adds them from innermost to outermost.

Lifecycle:
    Startup:  logging, database ping (retried), ready banner
    Shutdown: dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.routing import Match
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from tourbook import __version__
from tourbook.config import Settings, settings
from tourbook.database import dispose_engine, wait_for_database
from tourbook.errors import register_exception_handlers
from tourbook.exceptions import NotFoundError
from tourbook.middleware.body_parser import BodyParserMiddleware
from tourbook.middleware.error_handler import UnhandledErrorMiddleware
from tourbook.middleware.logging import RequestLoggingMiddleware
from tourbook.middleware.parameter_pollution import ParameterPollutionMiddleware
from tourbook.middleware.rate_limit import RateLimitMiddleware
from tourbook.middleware.request_id import RequestIDMiddleware
from tourbook.middleware.sanitize import SanitizeMiddleware
from tourbook.middleware.security_headers import SecurityHeadersMiddleware
from tourbook.middleware.static_files import StaticFilesMiddleware
from tourbook.routes import bookings, health, reviews, tours, users, views

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]
CORS_METHODS = ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"]
CATCH_ALL_PATH = "/{path:path}"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(config: Settings = settings) -> None:
    """
    Configure the root logger once at startup.

    Format: 2024-05-01T12:00:00 [INFO] tourbook.access: GET /api/v1/tours 200 3.2 ms - 512

    uvicorn's own access log is silenced; with NODE_ENV=development the
    tourbook.access logger takes its place.
    """
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

def _lifespan_for(config: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(config)
        logger.info("=" * 60)
        logger.info("Tourbook Backend %s starting up (NODE_ENV=%s)", __version__, config.node_env)

        try:
            await wait_for_database()
            logger.info("Database connection established")
        except (OSError, SQLAlchemyError) as e:
            # Keep serving: /health reports the outage and requests fail with 500
            logger.error("Database unreachable after %d attempts: %s", config.db_connect_attempts, e)

        logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
        logger.info("=" * 60)

        yield

        logger.info("Tourbook Backend shutting down...")
        await dispose_engine()
        logger.info("Shutdown complete.")

    return lifespan


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def register_middleware(app: FastAPI, config: Settings) -> None:
    """Add the request pipeline, innermost first."""
    app.add_middleware(UnhandledErrorMiddleware, debug=config.is_development)

    if config.compression_enabled:
        app.add_middleware(GZipMiddleware, minimum_size=config.gzip_minimum_size)

    app.add_middleware(ParameterPollutionMiddleware, whitelist=config.hpp_whitelist)
    app.add_middleware(SanitizeMiddleware)
    app.add_middleware(BodyParserMiddleware, limit=config.body_limit)

    app.add_middleware(
        RateLimitMiddleware,
        max_requests=config.rate_limit_requests,
        window_seconds=config.rate_limit_window,
        path_prefix=config.rate_limit_path_prefix,
        message=config.rate_limit_message,
    )

    if config.is_development:
        app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(
        SecurityHeadersMiddleware,
        csp_directives=config.csp_directives,
        hsts_max_age=config.hsts_max_age,
    )
    app.add_middleware(StaticFilesMiddleware, directory=config.public_dir)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=False,
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "Retry-After",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
        ],
    )

    app.add_middleware(RequestIDMiddleware)

    if config.trust_proxy:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")


def _has_route(app: FastAPI, scope: dict, path: str) -> bool:
    """True if a route other than the catch-all matches `path` (any method)."""
    candidate = {**scope, "path": path}
    for route in app.router.routes:
        if getattr(route, "path", None) == CATCH_ALL_PATH:
            continue
        match, _ = route.matches(candidate)
        if match != Match.NONE:
            return True
    return False


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Pass `config` to build an app with non-default settings (tests use this
    for smaller rate limits or NODE_ENV=development); otherwise the
    environment-loaded singleton is used.
    """
    config = config or settings

    app = FastAPI(
        title="Tourbook API",
        description="Tours, users, reviews and bookings for a tour-booking site.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=_lifespan_for(config),
    )
    app.state.settings = config

    register_middleware(app, config)
    register_exception_handlers(app, config)

    app.include_router(views.router)
    app.include_router(tours.router)
    app.include_router(users.router)
    app.include_router(reviews.router)
    app.include_router(bookings.router)
    app.include_router(health.router)

    # Registered last so it only sees requests no router matched
    @app.api_route(CATCH_ALL_PATH, methods=ALL_METHODS, include_in_schema=False)
    async def not_found(request: Request, path: str):
        # OPTIONS without Access-Control-Request-Method is not a preflight,
        # so CORSMiddleware lets it through; answer it for every path.
        if request.method == "OPTIONS":
            return Response(
                status_code=204,
                headers={"Access-Control-Allow-Methods": ",".join(CORS_METHODS)},
            )

        # Non-strict routing: /api/v1/tours/ is the same resource as /api/v1/tours
        stripped = request.url.path.rstrip("/")
        if stripped and stripped != request.url.path and _has_route(app, request.scope, stripped):
            return RedirectResponse(url=str(request.url.replace(path=stripped)), status_code=307)

        url = request.url.path
        if request.url.query:
            url = f"{url}?{request.url.query}"
        raise NotFoundError(
            resource="route",
            message=f"Can't find {url} on this server!",
            context={"url": url},
        )

    return app


app = create_app()

"""
Site Assistant Server Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures CORS and exception handling, and provides a test-friendly
application factory.

Design Goals
------------
- Explicit resource lifecycle (rate-limit store, database engine)
- Centralized router registration
- CORS headers on every response, including errors
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import contextlib
import logging
from datetime import timedelta
from typing import AsyncIterator, Dict

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError

from .config import settings
from .core.errors import (
    AssistantError,
    assistant_exception_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from .core.logging import configure_logging
from .db import AnswerSink, create_engine, create_session_factory, init_models
from .ratelimit import FixedWindowRateLimiter, InMemoryRateLimitStore, RedisRateLimitStore

from .api import (
    assistant_routes,
    health_routes,
    newsletter_routes,
)


logger = logging.getLogger("assistant.app")


def cors_headers() -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.cors_allow_origin,
        "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------

@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Create shared stateful resources on startup and release them on shutdown.
    """
    logger.info("Starting site-assistant-server")

    redis_store = None
    if settings.rate_limiting_enabled:
        if settings.redis_url:
            redis_store = RedisRateLimitStore.from_url(settings.redis_url)
            store = redis_store
            backend = "redis"
        else:
            store = InMemoryRateLimitStore()
            backend = "in-memory"
        app.state.rate_limiter = FixedWindowRateLimiter(
            store,
            max_requests=settings.rate_limit_max_per_ip,
            window=timedelta(hours=settings.rate_limit_window_hours),
        )
        logger.info(
            "Rate limiting enabled: %d request(s) per %.1fh (%s)",
            settings.rate_limit_max_per_ip,
            settings.rate_limit_window_hours,
            backend,
        )
    else:
        app.state.rate_limiter = None

    engine = None
    if settings.database_url:
        engine = create_engine(settings.database_url)
        await init_models(engine)
        app.state.answer_sink = AnswerSink(create_session_factory(engine))
        logger.info("Answer persistence enabled")
    else:
        app.state.answer_sink = AnswerSink()

    try:
        yield
    finally:
        logger.info("Shutting down site-assistant-server")
        if redis_store is not None:
            await redis_store.close()
        if engine is not None:
            await engine.dispose()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    configure_logging(settings.log_level)

    app = FastAPI(
        title="site-assistant-server",
        version="1.0.0",
        lifespan=lifespan,
    )

    # --------------------------------------------------------------
    # Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(AssistantError, assistant_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # CORS
    # --------------------------------------------------------------

    @app.middleware("http")
    async def _cors(request: Request, call_next) -> Response:
        headers = cors_headers()
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=headers)
        try:
            response = await call_next(request)
        except Exception as exc:
            # Handlers for Exception run outside this middleware
            response = await unhandled_exception_handler(request, exc)
        response.headers.update(headers)
        return response

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(assistant_routes.router)
    app.include_router(newsletter_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn)
# ---------------------------------------------------------------------

app = create_app()

"""User Store API — the single composition point for pipeline, store, and routes.

Invariants:
    - create_app is the only place stages, store handle, routes and error handlers are wired
    - Pipeline order is fixed here: error containment → correlation id → rate limiting →
      request logging → authentication → routes
    - The record store handle lives on app.state.record_store; the lifespan opens it and
      closes it on shutdown unless it was injected by the caller
    - Routes registered explicitly (no auto-discovery)

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Whole pipeline installed as one HTTP middleware: stage order is data, not a side
      effect of add_middleware call order
    - CORS added after the pipeline so it wraps it: preflight requests carry no credential
      and must be answered before authentication
    - CorrelationHeaderMiddleware added last so it wraps CORS: preflights answered by CORS
      still carry X-Correlation-ID
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from userstore.api.error_handlers import register_error_handlers
from userstore.api.routes import health, users
from userstore.config import Settings, get_settings
from userstore.infrastructure.observability import setup_logging
from userstore.infrastructure.record_store import RecordStore, RedisRecordStore
from userstore.middleware.authentication import AuthenticationStage
from userstore.middleware.correlation import (
    CorrelationHeaderMiddleware, CorrelationIdStage,
)
from userstore.middleware.error_containment import ErrorContainmentStage
from userstore.middleware.pipeline import Pipeline
from userstore.middleware.rate_limit import FixedWindowRateLimiter, RateLimitStage
from userstore.middleware.request_logging import RequestLoggingStage

logger = logging.getLogger(__name__)


def build_pipeline(
    settings: Settings, limiter: FixedWindowRateLimiter | None = None,
) -> Pipeline:
    """Assemble the request pipeline in its required order."""
    limiter = limiter or FixedWindowRateLimiter(
        settings.rate_limit_requests, settings.rate_limit_window_seconds,
    )
    return Pipeline([
        ErrorContainmentStage(),
        CorrelationIdStage(),
        RateLimitStage(limiter, public_paths=settings.public_paths),
        RequestLoggingStage(),
        AuthenticationStage(
            settings.api_shared_secret, public_paths=settings.public_paths,
        ),
    ])


def create_app(
    settings: Settings | None = None, record_store: RecordStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(settings.log_level, settings.log_format)
        owns_store = record_store is None
        if owns_store:
            app.state.record_store = RedisRecordStore.from_url(
                settings.redis_url,
                socket_timeout=settings.redis_socket_timeout_seconds,
                connect_timeout=settings.redis_connect_timeout_seconds,
                scan_batch_size=settings.scan_batch_size,
            )
        logger.info("User store API started")
        try:
            yield
        finally:
            if owns_store:
                await app.state.record_store.close()
            logger.info("User store API shutting down")

    app = FastAPI(title="User Store API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    if record_store is not None:
        app.state.record_store = record_store

    limiter = FixedWindowRateLimiter(
        settings.rate_limit_requests, settings.rate_limit_window_seconds,
    )
    app.state.rate_limiter = limiter
    app.state.pipeline = build_pipeline(settings, limiter)
    app.middleware("http")(app.state.pipeline)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Location", "X-Correlation-ID"],
    )
    app.add_middleware(CorrelationHeaderMiddleware)

    register_error_handlers(app)
    app.include_router(health.router)
    app.include_router(users.router)
    return app


app = create_app()

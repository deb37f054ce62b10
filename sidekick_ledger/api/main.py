"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from sidekick_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from sidekick_ledger.api.v1 import monitoring, obligations
from sidekick_ledger.config import settings
from sidekick_ledger.domain.exceptions import InvalidOperationError, ObligationNotFoundError, StorageError
from sidekick_ledger.infrastructure.clients.api_key import ApiKeyProvider
from sidekick_ledger.infrastructure.clients.torn import TornClient
from sidekick_ledger.infrastructure.notifications import FeedNotifier
from sidekick_ledger.infrastructure.observability.logging import setup_logging
from sidekick_ledger.infrastructure.storage.kv import SqlKeyValueStore
from sidekick_ledger.infrastructure.storage.session import build_engine
from sidekick_ledger.services.tracker import DebtTracker

# Setup structured logging
setup_logging(settings.log_level)


def build_tracker(notifications: FeedNotifier) -> DebtTracker:
    """Tracker backed by the configured SQL database and the live Torn API"""
    kv_store = SqlKeyValueStore(build_engine(settings.database_url))
    kv_store.create_schema()
    api_keys = ApiKeyProvider(settings.torn_api_key)
    return DebtTracker(
        kv_store=kv_store,
        client=TornClient(api_keys),
        api_keys=api_keys,
        notifier=notifications,
        settings=settings,
    )


def create_app(
    tracker: DebtTracker | None = None,
    notifications: FeedNotifier | None = None,
    start_timers: bool = True,
) -> FastAPI:
    """Create and configure FastAPI application"""
    feed = notifications or FeedNotifier()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.tracker is None:
            app.state.tracker = build_tracker(feed)
        await app.state.tracker.init(start_timers=start_timers)
        try:
            yield
        finally:
            await app.state.tracker.destroy()

    app = FastAPI(
        title="Sidekick Debt Tracker",
        description="Debt and loan ledger with automatic Torn payment reconciliation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.tracker = tracker
    app.state.notifications = feed

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(ObligationNotFoundError)
    async def not_found_handler(request: Request, exc: ObligationNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidOperationError)
    async def invalid_operation_handler(request: Request, exc: InvalidOperationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logging.error(f"Storage error: {exc}", extra={"request_id": getattr(request.state, "request_id", "unknown")})
        return JSONResponse(status_code=503, content={"detail": "Ledger storage unavailable"})

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(obligations.router, prefix="/v1", tags=["obligations"])
    app.include_router(monitoring.router, prefix="/v1", tags=["monitoring"])

    return app


app = create_app()

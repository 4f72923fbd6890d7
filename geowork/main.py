import os
from datetime import datetime
from typing import Callable, Optional

import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .db import init_db, make_engine, make_session_factory
from .logging import setup_logging, RequestIdMiddleware
from .push import get_push_provider
from .routes.locations import router as locations_router
from .routes.orchestrator import router as orchestrator_router
from .services.geofence_alerts import GeofenceAlertMonitor
from .services.notifications import Notifier
from .services.orchestrator import ScheduleOrchestrator
from .services.time_rules import utcnow
from .store.provider import SessionStore
from .store.sql_provider import SqlSessionStore

logger = structlog.get_logger(__name__)


def create_app(
    store: Optional[SessionStore] = None,
    notifier: Optional[Notifier] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name, version=settings.app_version)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    if store is None:
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        engine = make_engine(settings.database_url)
        if settings.auto_create_db:
            init_db(engine)
        store = SqlSessionStore(make_session_factory(engine))
    if notifier is None:
        notifier = Notifier.pooled(get_push_provider())

    app.state.store = store
    app.state.notifier = notifier
    app.state.clock = clock
    app.state.orchestrator = ScheduleOrchestrator(store, notifier, config=settings, clock=clock)
    app.state.alert_monitor = GeofenceAlertMonitor(store, notifier, config=settings)

    # Routers
    app.include_router(orchestrator_router)
    app.include_router(locations_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.on_event("shutdown")
    def _shutdown():
        notifier.shutdown()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/info")
    def info():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "pushProvider": settings.push_provider,
            "pushEnabled": settings.enable_push,
        }

    return app


app = create_app()

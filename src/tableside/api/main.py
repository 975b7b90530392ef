from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tableside.api.error_handling import register_exception_handlers
from tableside.api.middleware.access_log import AccessLogMiddleware
from tableside.api.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from tableside.api.routes.health import router as health_router
from tableside.api.routes.metrics import router as metrics_router
from tableside.api.routes.orders import router as orders_router
from tableside.api.ws.manager import DashboardSessionRegistry
from tableside.api.ws.routes import router as ws_router
from tableside.config import get_settings
from tableside.infrastructure.messaging.redis_change_feed import RedisChangeFeed
from tableside.infrastructure.observability.logging_config import configure_logging
from tableside.infrastructure.observability.otel import configure_otel


def _cors_allow_origins() -> list[str]:
    # dev/test accept any origin; credentials are never allowed
    if get_settings().app_env in {"dev", "test"}:
        return ["*"]
    raw_value = os.getenv("CORS_ALLOW_ORIGINS", "")
    return [origin.strip() for origin in raw_value.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.dashboard_sessions = DashboardSessionRegistry()
    app.state.change_feed = RedisChangeFeed()
    try:
        yield
    finally:
        await app.state.dashboard_sessions.close_all()


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Tableside Orders", version="0.1.0", lifespan=lifespan)
    register_exception_handlers(app)
    for router in (health_router, metrics_router, orders_router, ws_router):
        app.include_router(router)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_allow_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    configure_otel(app)
    return app


app = create_app()

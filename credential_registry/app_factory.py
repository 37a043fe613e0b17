from __future__ import annotations

from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from credential_registry.api.errors import register_error_handlers
from credential_registry.api.ops import build_ops_router
from credential_registry.core.config import SETTINGS
from credential_registry.middleware.metrics import MetricsMiddleware
from credential_registry.middleware.request_context import RequestContextMiddleware


def build_app(
    service_name: str,
    *,
    routers: Sequence[APIRouter],
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[None]],
) -> FastAPI:
    """Assemble one service: middleware, error envelope, ops + domain routes."""
    app = FastAPI(
        title=service_name,
        lifespan=lifespan,
        docs_url="/docs" if SETTINGS.is_dev else None,
        redoc_url="/redoc" if SETTINGS.is_dev else None,
    )

    # The browser form UI calls both services directly.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )
    # Last added runs first: RequestContext → Metrics → CORS → route.
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    register_error_handlers(app, worker_id=SETTINGS.worker_id)

    app.include_router(build_ops_router(service_name))
    for router in routers:
        app.include_router(router)
    return app

"""Operational endpoints shared by both services.

  /health  - liveness: the process answers.  Always 200.
  /ready   - readiness: storage answers SELECT 1.  503 takes the
             instance out of the load balancer without restarting it.
  /metrics - Prometheus text exposition for this process.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.exc import SQLAlchemyError

from credential_registry.core.config import SETTINGS
from credential_registry.db import engine as db_engine
from credential_registry.models.credential import utc_now_iso

logger = logging.getLogger(__name__)


def build_ops_router(service_name: str) -> APIRouter:
    router = APIRouter(tags=["ops"])

    @router.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "healthy",
            "service": service_name,
            "workerId": SETTINGS.worker_id,
            "timestamp": utc_now_iso(),
        }

    @router.get("/ready")
    async def ready(response: Response) -> dict[str, str]:
        storage = "not_configured"
        if db_engine.engine is not None:
            try:
                await db_engine.ping(db_engine.engine)
                storage = "ok"
            except (SQLAlchemyError, OSError):
                logger.warning("Readiness check failed: storage unreachable")
                storage = "unavailable"
                response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "ready" if storage != "unavailable" else "not_ready",
            "service": service_name,
            "storage": storage,
        }

    @router.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return router

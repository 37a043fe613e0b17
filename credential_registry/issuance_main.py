from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from credential_registry.api.issuance import router as issuance_router
from credential_registry.app_factory import build_app
from credential_registry.core.config import SETTINGS
from credential_registry.core.logging import setup_logging
from credential_registry.db.engine import lifespan_db

SERVICE_NAME = "issuance-service"

# Configure logging before anything else runs.
setup_logging(
    SETTINGS.log_level,
    json_format=SETTINGS.log_json,
    service=SERVICE_NAME,
    worker_id=SETTINGS.worker_id,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        logger.info("%s ready  worker=%s", SERVICE_NAME, SETTINGS.worker_id)
        yield


app = build_app(SERVICE_NAME, routers=[issuance_router], lifespan=lifespan)

logger.info(
    "%s started  env=%s log_level=%s port=%d docs=%s",
    SERVICE_NAME,
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)


def run() -> None:
    """Console entry point; uvicorn turns SIGTERM/SIGINT into lifespan shutdown."""
    uvicorn.run(app, host="0.0.0.0", port=SETTINGS.port, log_config=None)


if __name__ == "__main__":
    run()

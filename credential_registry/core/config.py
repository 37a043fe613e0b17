from __future__ import annotations

import os
import socket
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off", "")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: str = "false") -> bool:
    raw = _getenv(name, default).lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def resolve_worker_id() -> str:
    """Identity stamped on every issuance record and log entry.

    Deployment-assigned pod name wins, then the container hostname,
    then whatever the kernel reports.
    """
    for name in ("POD_NAME", "HOSTNAME"):
        value = _getenv(name, "")
        if value:
            return value
    return socket.gethostname()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    db_create_all: bool
    worker_id: str
    issuance_service_url: str
    issuance_service_timeout: float

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")
    timeout_raw = _getenv("ISSUANCE_SERVICE_TIMEOUT", "5")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"ISSUANCE_SERVICE_TIMEOUT must be a number (got {timeout_raw!r})"
        ) from None
    if timeout <= 0:
        raise ValueError(
            f"ISSUANCE_SERVICE_TIMEOUT must be positive (got {timeout_raw!r})"
        )

    issuance_url = _getenv("ISSUANCE_SERVICE_URL", "http://issuance-service:8000")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON"),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        db_create_all=_getbool("DB_CREATE_ALL"),
        worker_id=resolve_worker_id(),
        issuance_service_url=issuance_url.rstrip("/"),
        issuance_service_timeout=timeout,
    )


# Resolved once per process; the worker identity never changes after startup.
SETTINGS = load_settings()

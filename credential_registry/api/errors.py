"""Exception handlers mapping domain faults onto the error envelope.

Every error body has the same shape, {success: false, error, workerId,
timestamp}, whichever service produced it:

  CredentialValidationError        → 400, names the offending field
  RequestValidationError           → 400, body/query shape is wrong
  IssuanceServiceUnavailableError  → 500, upstream fault (verifier only)
  SQLAlchemyError                  → 500, storage fault for this request

Details of 500s go to the log, never to the caller.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from credential_registry.api.schemas import ErrorOut
from credential_registry.models.credential import (
    NOT_AN_OBJECT_MESSAGE,
    CredentialValidationError,
    utc_now_iso,
)
from credential_registry.services.verification_service import (
    UNAVAILABLE_MESSAGE,
    IssuanceServiceUnavailableError,
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_response(status_code: int, message: str, worker_id: str) -> JSONResponse:
    body = ErrorOut(error=message, worker_id=worker_id, timestamp=utc_now_iso())
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def describe_request_error(exc: RequestValidationError) -> str:
    """Turn a FastAPI validation failure into one caller-facing sentence."""
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if "credentials" in loc:
            return "Request must contain an array of credentials"
        if loc and loc[0] == "query":
            return f"Invalid query parameter: {loc[-1]}"
        if loc and loc[0] == "path":
            return f"Invalid path parameter: {loc[-1]}"
        if loc and loc[0] == "body":
            return NOT_AN_OBJECT_MESSAGE
    return "Invalid request"


def register_error_handlers(app: FastAPI, *, worker_id: str) -> None:
    @app.exception_handler(CredentialValidationError)
    async def credential_validation_handler(
        request: Request, exc: CredentialValidationError
    ) -> JSONResponse:
        # Already logged by the service that rejected it.
        return error_response(status.HTTP_400_BAD_REQUEST, str(exc), worker_id)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = describe_request_error(exc)
        logger.warning("Malformed request on %s: %s", request.url.path, message)
        return error_response(status.HTTP_400_BAD_REQUEST, message, worker_id)

    @app.exception_handler(IssuanceServiceUnavailableError)
    async def upstream_handler(
        request: Request, exc: IssuanceServiceUnavailableError
    ) -> JSONResponse:
        logger.error("Issuance service unavailable on %s: %s", request.url.path, exc.detail)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, UNAVAILABLE_MESSAGE, worker_id
        )

    @app.exception_handler(SQLAlchemyError)
    async def storage_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Storage fault on %s", request.url.path, exc_info=exc)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE, worker_id
        )

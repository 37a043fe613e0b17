"""Verification endpoints.

- POST /api/verify                  - verify one presented credential
- POST /api/verify/batch            - verify many; one result per item, in order
- GET  /api/verify/logs             - recent log entries plus aggregate stats
- GET  /api/verify/logs/{id}        - log history for one credential id

A credential that fails verification is still a 200: "not valid" is an
answer, not an HTTP error.  Only malformed input (400) and an
unreachable issuance service (500) are errors.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Query
from pydantic import BaseModel

from credential_registry.api.schemas import CamelModel, CredentialOut, ErrorOut
from credential_registry.core.config import SETTINGS
from credential_registry.db.engine import async_session_factory
from credential_registry.models.credential import Credential, utc_now_iso
from credential_registry.models.verification_log import VerificationLogEntry
from credential_registry.repos.sql_verification_log_repo import (
    SqlVerificationLogRepo,
)
from credential_registry.repos.verification_log_repo import (
    InMemoryVerificationLogRepo,
    VerificationLogRepo,
)
from credential_registry.services.issuance_client import HttpIssuanceLookup
from credential_registry.services.verification_service import (
    BatchVerificationResult,
    Verifier,
)

router = APIRouter(prefix="/api/verify", tags=["verification"])

# --- Module-level singletons (SQL when DATABASE_URL is set) ---

if async_session_factory is not None:
    log_repo: VerificationLogRepo = SqlVerificationLogRepo(async_session_factory)
else:
    log_repo = InMemoryVerificationLogRepo()

issuance_lookup = HttpIssuanceLookup(
    SETTINGS.issuance_service_url,
    timeout=SETTINGS.issuance_service_timeout,
)
verifier = Verifier(issuance_lookup, log_repo, worker_id=SETTINGS.worker_id)


# --- Pydantic schemas ---


class VerifyIn(BaseModel):
    # Shape is checked field-by-field by the verifier so that the error
    # names the missing field.
    credential: dict[str, Any]


class BatchVerifyIn(BaseModel):
    credentials: list[Any]


class VerifyOut(CamelModel):
    success: bool = True
    verified: bool
    message: str
    credential: CredentialOut | None = None
    issued_by: str | None = None
    issued_at: str | None = None
    worker_id: str
    timestamp: str


class BatchItemOut(CamelModel):
    credential_id: str
    verified: bool
    message: str
    credential: CredentialOut | None = None
    issued_by: str | None = None
    issued_at: str | None = None
    error: str | None = None

    @classmethod
    def from_result(cls, result: BatchVerificationResult) -> BatchItemOut:
        return cls(
            credential_id=result.credential_id,
            verified=result.verified,
            message=result.message,
            credential=(
                CredentialOut.from_domain(result.credential)
                if result.credential is not None
                else None
            ),
            issued_by=result.issued_by,
            issued_at=result.issued_at,
            error=result.error,
        )


class BatchVerifyOut(CamelModel):
    success: bool = True
    results: list[BatchItemOut]
    worker_id: str
    timestamp: str


class LogEntryOut(CamelModel):
    log_id: str
    credential_id: str
    verified: bool
    message: str
    issued_by: str | None = None
    issued_at: str | None = None
    verifier_worker_id: str
    logged_at_timestamp: str

    @classmethod
    def from_entry(cls, entry: VerificationLogEntry) -> LogEntryOut:
        return cls(
            log_id=entry.log_id,
            credential_id=entry.credential_id,
            verified=entry.verified,
            message=entry.message,
            issued_by=entry.issued_by,
            issued_at=entry.issued_at,
            verifier_worker_id=entry.verifier_worker_id,
            logged_at_timestamp=entry.logged_at,
        )


class StatsOut(CamelModel):
    total: int
    verified: int
    failed: int


class LogsOut(CamelModel):
    success: bool = True
    logs: list[LogEntryOut]
    stats: StatsOut
    worker_id: str
    timestamp: str


class CredentialLogsOut(CamelModel):
    success: bool = True
    logs: list[LogEntryOut]
    count: int
    worker_id: str
    timestamp: str


_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorOut},
    500: {"model": ErrorOut},
}


def _as_credential(item: Any) -> Credential | None:
    # None marks a batch item that is not an object.
    return Credential.from_dict(item) if isinstance(item, dict) else None


# --- Endpoints ---


@router.post(
    "",
    response_model=VerifyOut,
    response_model_exclude_none=True,
    responses=_ERRORS,
)
async def verify_credential(body: VerifyIn) -> VerifyOut:
    outcome = await verifier.verify(Credential.from_dict(body.credential))
    return VerifyOut(
        verified=outcome.verified,
        message=outcome.message,
        credential=(
            CredentialOut.from_domain(outcome.credential)
            if outcome.credential is not None
            else None
        ),
        issued_by=outcome.issued_by,
        issued_at=outcome.issued_at,
        worker_id=verifier.worker_id,
        timestamp=utc_now_iso(),
    )


@router.post(
    "/batch",
    response_model=BatchVerifyOut,
    response_model_exclude_none=True,
    responses=_ERRORS,
)
async def verify_batch(body: BatchVerifyIn) -> BatchVerifyOut:
    results = await verifier.verify_batch([_as_credential(c) for c in body.credentials])
    return BatchVerifyOut(
        results=[BatchItemOut.from_result(r) for r in results],
        worker_id=verifier.worker_id,
        timestamp=utc_now_iso(),
    )


@router.get("/logs", response_model=LogsOut, response_model_exclude_none=True)
async def get_logs(
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
) -> LogsOut:
    entries = await log_repo.query_recent(limit)
    stats = await log_repo.stats()
    return LogsOut(
        logs=[LogEntryOut.from_entry(e) for e in entries],
        stats=StatsOut(total=stats.total, verified=stats.verified, failed=stats.failed),
        worker_id=verifier.worker_id,
        timestamp=utc_now_iso(),
    )


@router.get(
    "/logs/{credential_id:path}",
    response_model=CredentialLogsOut,
    response_model_exclude_none=True,
)
async def get_credential_logs(credential_id: str) -> CredentialLogsOut:
    entries = await log_repo.query_by_credential_id(credential_id)
    return CredentialLogsOut(
        logs=[LogEntryOut.from_entry(e) for e in entries],
        count=len(entries),
        worker_id=verifier.worker_id,
        timestamp=utc_now_iso(),
    )

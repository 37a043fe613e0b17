"""Issuance endpoints.

- POST /api/issue-credential   - create-once issuance (201 new, 409 duplicate)
- GET  /api/credentials/{id}   - authoritative lookup used by the verifier
- GET  /api/credentials        - everything issued, with provenance

The lookup response carries the issuance provenance in workerId and
timestamp: the worker that first wrote the record and when.  The
verifier reports those values back as issuedBy / issuedAt.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Response, status

from credential_registry.api.errors import error_response
from credential_registry.api.schemas import (
    CamelModel,
    CredentialOut,
    ErrorOut,
    IssuedCredentialOut,
)
from credential_registry.core.config import SETTINGS
from credential_registry.db.engine import async_session_factory
from credential_registry.models.credential import Credential, utc_now_iso
from credential_registry.repos.credential_repo import (
    CredentialRepo,
    InMemoryCredentialRepo,
)
from credential_registry.repos.sql_credential_repo import SqlCredentialRepo
from credential_registry.services.issuance_service import IssuanceService

router = APIRouter(prefix="/api", tags=["issuance"])

# --- Module-level singletons (SQL when DATABASE_URL is set) ---

if async_session_factory is not None:
    credential_repo: CredentialRepo = SqlCredentialRepo(async_session_factory)
else:
    credential_repo = InMemoryCredentialRepo()

issuance_service = IssuanceService(credential_repo, worker_id=SETTINGS.worker_id)


# --- Pydantic schemas ---


class IssueOut(CamelModel):
    success: bool
    is_new: bool
    message: str
    credential: CredentialOut | None = None
    worker_id: str
    timestamp: str


class CredentialLookupOut(CamelModel):
    success: bool = True
    credential: CredentialOut
    worker_id: str
    timestamp: str


class CredentialListOut(CamelModel):
    success: bool = True
    credentials: list[IssuedCredentialOut]
    count: int
    worker_id: str
    timestamp: str


# --- Endpoints ---


@router.post(
    "/issue-credential",
    response_model=IssueOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_409_CONFLICT: {"model": IssueOut},
        status.HTTP_400_BAD_REQUEST: {"model": ErrorOut},
    },
)
async def issue_credential(
    payload: Annotated[dict[str, Any], Body()],
    response: Response,
) -> IssueOut:
    """Issue a credential once.  A repeat for the same id is a 409, not an error."""
    outcome = await issuance_service.issue(Credential.from_dict(payload))

    if not outcome.success or outcome.record is None:
        response.status_code = status.HTTP_409_CONFLICT
        return IssueOut(
            success=False,
            is_new=False,
            message=outcome.message,
            worker_id=issuance_service.worker_id,
            timestamp=utc_now_iso(),
        )

    return IssueOut(
        success=True,
        is_new=True,
        message=outcome.message,
        credential=CredentialOut.from_domain(outcome.record.credential),
        worker_id=outcome.record.issuer_worker_id,
        timestamp=outcome.record.issued_at,
    )


@router.get(
    "/credentials/{credential_id:path}",
    response_model=CredentialLookupOut,
    response_model_exclude_none=True,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorOut}},
)
async def get_credential(credential_id: str) -> Any:
    record = await issuance_service.get_by_id(credential_id)
    if record is None:
        return error_response(
            status.HTTP_404_NOT_FOUND, "Credential not found", issuance_service.worker_id
        )
    return CredentialLookupOut(
        credential=CredentialOut.from_domain(record.credential),
        worker_id=record.issuer_worker_id,
        timestamp=record.issued_at,
    )


@router.get(
    "/credentials",
    response_model=CredentialListOut,
    response_model_exclude_none=True,
)
async def list_credentials() -> CredentialListOut:
    records = await issuance_service.get_all()
    return CredentialListOut(
        credentials=[IssuedCredentialOut.from_record(r) for r in records],
        count=len(records),
        worker_id=issuance_service.worker_id,
        timestamp=utc_now_iso(),
    )

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from credential_registry.models.credential import utc_now_iso


@dataclass(frozen=True, slots=True)
class VerificationLogEntry:
    """One verification decision. Append-only; never updated or removed."""

    log_id: str
    credential_id: str
    verified: bool
    message: str
    verifier_worker_id: str
    logged_at: str
    issued_by: str | None = None
    issued_at: str | None = None

    @staticmethod
    def new(
        *,
        credential_id: str,
        verified: bool,
        message: str,
        verifier_worker_id: str,
        issued_by: str | None = None,
        issued_at: str | None = None,
    ) -> VerificationLogEntry:
        return VerificationLogEntry(
            log_id=str(uuid4()),
            credential_id=credential_id,
            verified=verified,
            message=message,
            verifier_worker_id=verifier_worker_id,
            logged_at=utc_now_iso(),
            issued_by=issued_by,
            issued_at=issued_at,
        )


@dataclass(frozen=True, slots=True)
class VerificationStats:
    total: int
    verified: int
    failed: int

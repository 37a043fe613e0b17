"""Verification of presented credentials against the issuance authority.

The verifier holds no copy of issuance state.  Every attempt fetches the
authoritative record through an IssuanceLookup, compares, then appends
exactly one entry to the verification log before returning.

Three kinds of "not valid" are kept apart:

  not found / mismatch - a decision; verified=False, always logged
  invalid input        - CredentialValidationError, raised before any
                         lookup, never logged
  upstream fault       - IssuanceServiceUnavailableError, raised; the
                         verifier cannot decide, so nothing is logged as
                         a decision (it is logged and counted as a fault)

A storage fault while writing the log entry propagates from verify().
In a batch it is reported on that item only, as are the other faults.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from credential_registry.core.metrics import CREDENTIAL_VERIFICATIONS
from credential_registry.models.credential import (
    NOT_AN_OBJECT_MESSAGE,
    Credential,
    CredentialValidationError,
    IssuedCredential,
    validate_credential,
)
from credential_registry.repos.verification_log_repo import VerificationLogRepo

logger = logging.getLogger(__name__)

VERIFIED_MESSAGE = "Credential is valid and has been issued"
NOT_FOUND_MESSAGE = "Credential not found in issuance records"
MISMATCH_MESSAGE = "Credential data does not match issued credential"
UNAVAILABLE_MESSAGE = "Failed to verify credential: Unable to contact issuance service"
STORAGE_ERROR_MESSAGE = "Failed to verify credential: Unable to record verification result"


class IssuanceServiceUnavailableError(Exception):
    """The issuance service could not answer: timeout, connection failure,
    unexpected status, or a malformed body.  Distinct from "not found"."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class IssuanceLookup(Protocol):
    async def get_issued(self, credential_id: str) -> IssuedCredential | None:
        """Return the authoritative record, None if never issued.

        Raises IssuanceServiceUnavailableError when the authority can't
        be consulted.
        """
        ...


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    verified: bool
    message: str
    issued_by: str | None = None
    issued_at: str | None = None
    credential: Credential | None = None


@dataclass(frozen=True, slots=True)
class BatchVerificationResult:
    """One batch item.  `error` is set when no decision could be made."""

    credential_id: str
    verified: bool
    message: str
    issued_by: str | None = None
    issued_at: str | None = None
    credential: Credential | None = None
    # invalid_credential|issuance_service_unavailable|storage_error
    error: str | None = None


def credentials_match(presented: Credential, issued: Credential) -> bool:
    if presented.id != issued.id:
        return False
    if presented.holder_name != issued.holder_name:
        return False
    if presented.credential_type != issued.credential_type:
        return False
    if presented.issue_date != issued.issue_date:
        return False
    # Expiry only counts when the presenter supplies one; an omitted
    # expiry matches any issued expiry.
    if presented.expiry_date is not None and presented.expiry_date != issued.expiry_date:
        return False
    return True


class Verifier:
    def __init__(
        self,
        lookup: IssuanceLookup,
        log_repo: VerificationLogRepo,
        *,
        worker_id: str,
    ) -> None:
        self._lookup = lookup
        self._log_repo = log_repo
        self._worker_id = worker_id

    @property
    def worker_id(self) -> str:
        return self._worker_id

    async def verify(self, presented: Credential) -> VerificationOutcome:
        try:
            validate_credential(presented)
        except CredentialValidationError as e:
            CREDENTIAL_VERIFICATIONS.labels(result="invalid").inc()
            logger.warning("Rejected invalid credential for verification: %s", e)
            raise

        try:
            issued = await self._lookup.get_issued(presented.id)
        except IssuanceServiceUnavailableError as e:
            CREDENTIAL_VERIFICATIONS.labels(result="upstream_error").inc()
            logger.warning(
                "Verification of id=%s aborted: %s",
                presented.id,
                e.detail,
                extra={"credential_id": presented.id},
            )
            raise

        if issued is None:
            outcome = VerificationOutcome(verified=False, message=NOT_FOUND_MESSAGE)
            result = "not_found"
        elif not credentials_match(presented, issued.credential):
            outcome = VerificationOutcome(verified=False, message=MISMATCH_MESSAGE)
            result = "mismatch"
        else:
            outcome = VerificationOutcome(
                verified=True,
                message=VERIFIED_MESSAGE,
                issued_by=issued.issuer_worker_id,
                issued_at=issued.issued_at,
                credential=issued.credential,
            )
            result = "verified"

        try:
            await self._log_repo.append(
                credential_id=presented.id,
                verified=outcome.verified,
                message=outcome.message,
                verifier_worker_id=self._worker_id,
                issued_by=outcome.issued_by,
                issued_at=outcome.issued_at,
            )
        except SQLAlchemyError:
            CREDENTIAL_VERIFICATIONS.labels(result="storage_error").inc()
            raise
        CREDENTIAL_VERIFICATIONS.labels(result=result).inc()
        logger.info(
            "Verified id=%s result=%s",
            presented.id,
            result,
            extra={"credential_id": presented.id},
        )
        return outcome

    async def verify_batch(
        self, candidates: Sequence[Credential | None]
    ) -> list[BatchVerificationResult]:
        """Verify every candidate independently; results keep input order.

        A None candidate stands for an item that was not an object at all.
        """
        return list(await asyncio.gather(*(self._verify_item(c) for c in candidates)))

    async def _verify_item(self, candidate: Credential | None) -> BatchVerificationResult:
        if candidate is None:
            CREDENTIAL_VERIFICATIONS.labels(result="invalid").inc()
            return BatchVerificationResult(
                credential_id="",
                verified=False,
                message=NOT_AN_OBJECT_MESSAGE,
                error="invalid_credential",
            )
        try:
            outcome = await self.verify(candidate)
        except CredentialValidationError as e:
            return BatchVerificationResult(
                credential_id=candidate.id,
                verified=False,
                message=str(e),
                error="invalid_credential",
            )
        except IssuanceServiceUnavailableError:
            return BatchVerificationResult(
                credential_id=candidate.id,
                verified=False,
                message=UNAVAILABLE_MESSAGE,
                error="issuance_service_unavailable",
            )
        except SQLAlchemyError:
            logger.error(
                "Batch item id=%s: verification log write failed",
                candidate.id,
                exc_info=True,
                extra={"credential_id": candidate.id},
            )
            return BatchVerificationResult(
                credential_id=candidate.id,
                verified=False,
                message=STORAGE_ERROR_MESSAGE,
                error="storage_error",
            )
        return BatchVerificationResult(
            credential_id=candidate.id,
            verified=outcome.verified,
            message=outcome.message,
            issued_by=outcome.issued_by,
            issued_at=outcome.issued_at,
            credential=outcome.credential,
        )

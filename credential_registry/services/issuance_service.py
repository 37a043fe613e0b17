from __future__ import annotations

import logging
from dataclasses import dataclass

from credential_registry.core.metrics import CREDENTIAL_ISSUANCES
from credential_registry.models.credential import (
    Credential,
    CredentialValidationError,
    IssuedCredential,
    validate_credential,
)
from credential_registry.repos.credential_repo import CredentialRepo

logger = logging.getLogger(__name__)

ALREADY_ISSUED_MESSAGE = "Credential already issued"


@dataclass(frozen=True, slots=True)
class IssuanceOutcome:
    """Disposition of one issue() call.

    A duplicate is a normal outcome (success=False, is_new=False), not an
    exception: retried and repeated submissions are expected traffic.
    """

    success: bool
    is_new: bool
    message: str
    record: IssuedCredential | None = None


class IssuanceService:
    """Create-once issuance over a CredentialRepo.

    The repo's put() is the only arbiter of "first": this class never
    reads before writing.
    """

    def __init__(self, repo: CredentialRepo, *, worker_id: str) -> None:
        self._repo = repo
        self._worker_id = worker_id

    @property
    def worker_id(self) -> str:
        return self._worker_id

    async def issue(self, candidate: Credential) -> IssuanceOutcome:
        try:
            validate_credential(candidate)
        except CredentialValidationError as e:
            CREDENTIAL_ISSUANCES.labels(outcome="invalid").inc()
            logger.warning("Rejected invalid credential: %s", e)
            raise

        record = IssuedCredential.new(candidate, issuer_worker_id=self._worker_id)
        created = await self._repo.put(record)

        if not created:
            CREDENTIAL_ISSUANCES.labels(outcome="duplicate").inc()
            logger.info(
                "Duplicate issuance ignored",
                extra={"credential_id": candidate.id},
            )
            return IssuanceOutcome(
                success=False, is_new=False, message=ALREADY_ISSUED_MESSAGE
            )

        CREDENTIAL_ISSUANCES.labels(outcome="created").inc()
        logger.info(
            "Issued credential id=%s type=%s",
            candidate.id,
            candidate.credential_type,
            extra={"credential_id": candidate.id},
        )
        return IssuanceOutcome(
            success=True,
            is_new=True,
            message=f"Credential issued by worker-{self._worker_id}",
            record=record,
        )

    async def get_by_id(self, credential_id: str) -> IssuedCredential | None:
        return await self._repo.get_by_id(credential_id)

    async def get_all(self) -> list[IssuedCredential]:
        return await self._repo.get_all()

from __future__ import annotations

from typing import Protocol

from credential_registry.models.verification_log import (
    VerificationLogEntry,
    VerificationStats,
)


class VerificationLogRepo(Protocol):
    async def append(
        self,
        *,
        credential_id: str,
        verified: bool,
        message: str,
        verifier_worker_id: str,
        issued_by: str | None = None,
        issued_at: str | None = None,
    ) -> VerificationLogEntry: ...

    async def query_by_credential_id(
        self, credential_id: str
    ) -> list[VerificationLogEntry]: ...

    async def query_recent(self, limit: int) -> list[VerificationLogEntry]: ...
    async def stats(self) -> VerificationStats: ...


def check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError(f"limit must be >= 1 (got {limit})")


class InMemoryVerificationLogRepo:
    """List-backed log; insertion order is logged_at order."""

    def __init__(self) -> None:
        self._entries: list[VerificationLogEntry] = []

    async def append(
        self,
        *,
        credential_id: str,
        verified: bool,
        message: str,
        verifier_worker_id: str,
        issued_by: str | None = None,
        issued_at: str | None = None,
    ) -> VerificationLogEntry:
        entry = VerificationLogEntry.new(
            credential_id=credential_id,
            verified=verified,
            message=message,
            verifier_worker_id=verifier_worker_id,
            issued_by=issued_by,
            issued_at=issued_at,
        )
        self._entries.append(entry)
        return entry

    async def query_by_credential_id(
        self, credential_id: str
    ) -> list[VerificationLogEntry]:
        return [e for e in reversed(self._entries) if e.credential_id == credential_id]

    async def query_recent(self, limit: int) -> list[VerificationLogEntry]:
        check_limit(limit)
        return list(reversed(self._entries[-limit:]))

    async def stats(self) -> VerificationStats:
        total = len(self._entries)
        verified = sum(1 for e in self._entries if e.verified)
        return VerificationStats(total=total, verified=verified, failed=total - verified)

"""SQL implementation of VerificationLogRepo."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from credential_registry.db.tables import VerificationLogRow
from credential_registry.models.verification_log import (
    VerificationLogEntry,
    VerificationStats,
)
from credential_registry.repos.verification_log_repo import check_limit

_NEWEST_FIRST = (VerificationLogRow.logged_at.desc(), VerificationLogRow.seq.desc())


class SqlVerificationLogRepo:
    """Satisfies the VerificationLogRepo Protocol using SQLAlchemy.

    One transaction per call.  Batch verification appends from several
    tasks at once, and an AsyncSession must not be shared between tasks.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

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
        async with self._session_factory() as session:
            session.add(
                VerificationLogRow(
                    log_id=entry.log_id,
                    credential_id=entry.credential_id,
                    verified=entry.verified,
                    message=entry.message,
                    issued_by=entry.issued_by,
                    issued_at=entry.issued_at,
                    verifier_worker_id=entry.verifier_worker_id,
                    logged_at=entry.logged_at,
                )
            )
            await session.commit()
        return entry

    async def query_by_credential_id(
        self, credential_id: str
    ) -> list[VerificationLogEntry]:
        stmt = (
            select(VerificationLogRow)
            .where(VerificationLogRow.credential_id == credential_id)
            .order_by(*_NEWEST_FIRST)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_entry(row) for row in rows]

    async def query_recent(self, limit: int) -> list[VerificationLogEntry]:
        check_limit(limit)
        stmt = select(VerificationLogRow).order_by(*_NEWEST_FIRST).limit(limit)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_entry(row) for row in rows]

    async def stats(self) -> VerificationStats:
        stmt = select(
            func.count(VerificationLogRow.seq),
            func.count(VerificationLogRow.seq).filter(
                VerificationLogRow.verified.is_(True)
            ),
        )
        async with self._session_factory() as session:
            total, verified = (await session.execute(stmt)).one()
        # Both counts come from one snapshot, so failed is exact.
        return VerificationStats(total=total, verified=verified, failed=total - verified)


def _row_to_entry(row: VerificationLogRow) -> VerificationLogEntry:
    return VerificationLogEntry(
        log_id=row.log_id,
        credential_id=row.credential_id,
        verified=row.verified,
        message=row.message,
        verifier_worker_id=row.verifier_worker_id,
        logged_at=row.logged_at,
        issued_by=row.issued_by,
        issued_at=row.issued_at,
    )

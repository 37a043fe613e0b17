"""SQL implementation of CredentialRepo."""

from __future__ import annotations

import logging

from sqlalchemy import insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from credential_registry.db.tables import CredentialRow
from credential_registry.models.credential import Credential, IssuedCredential

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO NOTHING ... RETURNING.
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SqlCredentialRepo:
    """Satisfies the CredentialRepo Protocol using SQLAlchemy.

    Each call runs in its own transaction, committed before returning,
    so a True from put() means the record is durable.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def put(self, record: IssuedCredential) -> bool:
        values = _record_to_values(record)
        async with self._session_factory() as session:
            dialect = session.get_bind().dialect.name
            dialect_insert = _UPSERT_INSERTS.get(dialect)

            if dialect_insert is not None:
                # The primary key arbitrates concurrent issuers: exactly one
                # INSERT returns the id, the rest hit the conflict clause.
                stmt = (
                    dialect_insert(CredentialRow)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=[CredentialRow.id])
                    .returning(CredentialRow.id)
                )
                inserted = (await session.execute(stmt)).scalar_one_or_none()
                await session.commit()
                return inserted is not None

            try:
                await session.execute(insert(CredentialRow).values(**values))
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.debug("Duplicate credential id=%s on %s", record.id, dialect)
                return False
            return True

    async def get_by_id(self, credential_id: str) -> IssuedCredential | None:
        async with self._session_factory() as session:
            stmt = select(CredentialRow).where(CredentialRow.id == credential_id)
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_record(row)

    async def get_all(self) -> list[IssuedCredential]:
        async with self._session_factory() as session:
            stmt = select(CredentialRow).order_by(
                CredentialRow.issued_at, CredentialRow.id
            )
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_record(row) for row in rows]


def _record_to_values(record: IssuedCredential) -> dict[str, str | None]:
    cred = record.credential
    return {
        "id": cred.id,
        "holder_name": cred.holder_name,
        "credential_type": cred.credential_type,
        "issue_date": cred.issue_date,
        "expiry_date": cred.expiry_date,
        "issuer_worker_id": record.issuer_worker_id,
        "issued_at": record.issued_at,
    }


def _row_to_record(row: CredentialRow) -> IssuedCredential:
    return IssuedCredential(
        credential=Credential(
            id=row.id,
            holder_name=row.holder_name,
            credential_type=row.credential_type,
            issue_date=row.issue_date,
            expiry_date=row.expiry_date,
        ),
        issuer_worker_id=row.issuer_worker_id,
        issued_at=row.issued_at,
    )

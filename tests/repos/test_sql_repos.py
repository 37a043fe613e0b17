"""SQL repositories against a throwaway SQLite file.

Each test runs its whole scenario inside one asyncio.run() so that the
engine's pooled connections never cross event loops.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from credential_registry.db.engine import build_engine, build_session_factory, create_all
from credential_registry.models.credential import IssuedCredential
from credential_registry.repos.sql_credential_repo import SqlCredentialRepo
from credential_registry.repos.sql_verification_log_repo import (
    SqlVerificationLogRepo,
)
from tests.fakes import make_credential

T = TypeVar("T")

Scenario = Callable[[async_sessionmaker[AsyncSession]], Awaitable[T]]


def _run_against_sqlite(tmp_path: Path, scenario: Scenario[T]) -> T:
    async def main() -> T:
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
        try:
            await create_all(engine)
            return await scenario(build_session_factory(engine))
        finally:
            await engine.dispose()

    return asyncio.run(main())


def _record(cred_id: str = "CRED-1", worker: str = "worker-1", **fields) -> IssuedCredential:
    return IssuedCredential.new(
        make_credential(id=cred_id, **fields), issuer_worker_id=worker
    )


# ---- credentials ----


def test_put_then_get_round_trips_every_field(tmp_path: Path) -> None:
    record = _record(expiry_date="2030-01-01")

    async def scenario(factory):
        repo = SqlCredentialRepo(factory)
        created = await repo.put(record)
        return created, await repo.get_by_id("CRED-1")

    created, fetched = _run_against_sqlite(tmp_path, scenario)
    assert created is True
    assert fetched == record


def test_get_unknown_returns_none(tmp_path: Path) -> None:
    async def scenario(factory):
        return await SqlCredentialRepo(factory).get_by_id("missing")

    assert _run_against_sqlite(tmp_path, scenario) is None


def test_put_duplicate_keeps_first_record(tmp_path: Path) -> None:
    first = _record(worker="worker-1")
    second = _record(worker="worker-2", holder_name="Mallory")

    async def scenario(factory):
        repo = SqlCredentialRepo(factory)
        return (
            await repo.put(first),
            await repo.put(second),
            await repo.get_by_id("CRED-1"),
        )

    created_first, created_second, stored = _run_against_sqlite(tmp_path, scenario)
    assert created_first is True
    assert created_second is False
    assert stored == first


def test_concurrent_puts_have_exactly_one_winner(tmp_path: Path) -> None:
    async def scenario(factory):
        repo = SqlCredentialRepo(factory)
        results = await asyncio.gather(
            *(repo.put(_record(worker=f"worker-{i}")) for i in range(5))
        )
        return list(results), await repo.get_all()

    results, stored = _run_against_sqlite(tmp_path, scenario)
    assert results.count(True) == 1
    assert len(stored) == 1


def test_get_all_returns_every_record(tmp_path: Path) -> None:
    async def scenario(factory):
        repo = SqlCredentialRepo(factory)
        for cred_id in ("A", "B", "C"):
            await repo.put(_record(cred_id))
        return await repo.get_all()

    assert {r.id for r in _run_against_sqlite(tmp_path, scenario)} == {"A", "B", "C"}


# ---- verification log ----


async def _append(repo: SqlVerificationLogRepo, cred_id: str, verified: bool):
    return await repo.append(
        credential_id=cred_id,
        verified=verified,
        message="ok" if verified else "no",
        verifier_worker_id="verifier-1",
        issued_by="worker-1" if verified else None,
        issued_at="2025-01-01T00:00:00.000Z" if verified else None,
    )


def test_log_append_then_query_by_credential(tmp_path: Path) -> None:
    async def scenario(factory):
        repo = SqlVerificationLogRepo(factory)
        first = await _append(repo, "A", False)
        await _append(repo, "B", True)
        second = await _append(repo, "A", True)
        return [first, second], await repo.query_by_credential_id("A")

    (first, second), entries = _run_against_sqlite(tmp_path, scenario)
    # Newest first, and every field survives the round trip.
    assert entries == [second, first]


def test_log_query_recent_is_newest_first_and_limited(tmp_path: Path) -> None:
    async def scenario(factory):
        repo = SqlVerificationLogRepo(factory)
        for cred_id in ("A", "B", "C", "D"):
            await _append(repo, cred_id, True)
        return await repo.query_recent(2)

    entries = _run_against_sqlite(tmp_path, scenario)
    assert [e.credential_id for e in entries] == ["D", "C"]


def test_log_query_recent_rejects_non_positive_limit(tmp_path: Path) -> None:
    async def scenario(factory):
        return await SqlVerificationLogRepo(factory).query_recent(0)

    with pytest.raises(ValueError, match="limit must be >= 1"):
        _run_against_sqlite(tmp_path, scenario)


def test_log_stats(tmp_path: Path) -> None:
    async def scenario(factory):
        repo = SqlVerificationLogRepo(factory)
        empty = await repo.stats()
        await _append(repo, "A", True)
        await _append(repo, "B", False)
        await _append(repo, "C", False)
        return empty, await repo.stats()

    empty, stats = _run_against_sqlite(tmp_path, scenario)
    assert (empty.total, empty.verified, empty.failed) == (0, 0, 0)
    assert (stats.total, stats.verified, stats.failed) == (3, 1, 2)


def test_log_concurrent_appends_are_all_kept(tmp_path: Path) -> None:
    async def scenario(factory):
        repo = SqlVerificationLogRepo(factory)
        await asyncio.gather(*(_append(repo, f"C-{i}", i % 2 == 0) for i in range(6)))
        return await repo.stats()

    stats = _run_against_sqlite(tmp_path, scenario)
    assert stats.total == 6
    assert stats.verified == 3

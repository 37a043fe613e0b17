from __future__ import annotations

from typing import Protocol

from credential_registry.models.credential import IssuedCredential


class CredentialRepo(Protocol):
    async def put(self, record: IssuedCredential) -> bool:
        """Insert if the id is absent. Returns False (and writes nothing)
        when a record with that id already exists."""
        ...

    async def get_by_id(self, credential_id: str) -> IssuedCredential | None: ...
    async def get_all(self) -> list[IssuedCredential]: ...


class InMemoryCredentialRepo:
    def __init__(self) -> None:
        self._records: dict[str, IssuedCredential] = {}

    async def put(self, record: IssuedCredential) -> bool:
        # No await between the membership test and the write, so this is
        # atomic with respect to other tasks on the event loop.
        if record.id in self._records:
            return False
        self._records[record.id] = record
        return True

    async def get_by_id(self, credential_id: str) -> IssuedCredential | None:
        return self._records.get(credential_id)

    async def get_all(self) -> list[IssuedCredential]:
        return list(self._records.values())

"""Wire schemas shared by both services.

Field names are snake_case in Python and camelCase on the wire
(holderName, workerId, ...).  FastAPI serializes response models by
alias, so returning these models produces camelCase JSON.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from credential_registry.models.credential import Credential, IssuedCredential


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CredentialOut(CamelModel):
    id: str
    holder_name: str
    credential_type: str
    issue_date: str
    expiry_date: str | None = None

    @classmethod
    def from_domain(cls, credential: Credential) -> CredentialOut:
        return cls(
            id=credential.id,
            holder_name=credential.holder_name,
            credential_type=credential.credential_type,
            issue_date=credential.issue_date,
            expiry_date=credential.expiry_date,
        )


class IssuedCredentialOut(CredentialOut):
    issued_by: str
    issued_at: str

    @classmethod
    def from_record(cls, record: IssuedCredential) -> IssuedCredentialOut:
        cred = record.credential
        return cls(
            id=cred.id,
            holder_name=cred.holder_name,
            credential_type=cred.credential_type,
            issue_date=cred.issue_date,
            expiry_date=cred.expiry_date,
            issued_by=record.issuer_worker_id,
            issued_at=record.issued_at,
        )


class ErrorOut(CamelModel):
    success: bool = False
    error: str
    worker_id: str
    timestamp: str

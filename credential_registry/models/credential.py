from __future__ import annotations

import datetime
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

# Wire (camelCase) name for each required field, in validation order.
REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("id", "id"),
    ("holder_name", "holderName"),
    ("credential_type", "credentialType"),
    ("issue_date", "issueDate"),
)

NOT_AN_OBJECT_MESSAGE = "Credential must be an object"


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.datetime.now(datetime.UTC)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CredentialValidationError(ValueError):
    """A required credential field is missing, empty, or not a string."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Credential must have a valid {field}")


@dataclass(frozen=True, slots=True)
class Credential:
    """The holder-identifying record callers issue and present."""

    id: str
    holder_name: str
    credential_type: str
    issue_date: str
    expiry_date: str | None = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> Credential:
        """Build from a camelCase payload.

        Lenient: non-string values become "" so that validate_credential()
        reports them by field name instead of failing with a TypeError.
        """

        def _text(key: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else ""

        expiry = data.get("expiryDate")
        return Credential(
            id=_text("id"),
            holder_name=_text("holderName"),
            credential_type=_text("credentialType"),
            issue_date=_text("issueDate"),
            expiry_date=expiry if isinstance(expiry, str) and expiry else None,
        )

    def to_dict(self) -> dict[str, str]:
        out = {
            "id": self.id,
            "holderName": self.holder_name,
            "credentialType": self.credential_type,
            "issueDate": self.issue_date,
        }
        if self.expiry_date is not None:
            out["expiryDate"] = self.expiry_date
        return out


def validate_credential(credential: Credential) -> None:
    """Raise CredentialValidationError naming the first bad required field."""
    for attr, wire_name in REQUIRED_FIELDS:
        value = getattr(credential, attr)
        if not isinstance(value, str) or not value:
            raise CredentialValidationError(wire_name)


@dataclass(frozen=True, slots=True)
class IssuedCredential:
    """Issuance record: the credential as first written, plus provenance.

    Created once per credential id and never mutated.
    """

    credential: Credential
    issuer_worker_id: str
    issued_at: str

    @property
    def id(self) -> str:
        return self.credential.id

    @staticmethod
    def new(credential: Credential, *, issuer_worker_id: str) -> IssuedCredential:
        return IssuedCredential(
            credential=credential,
            issuer_worker_id=issuer_worker_id,
            issued_at=utc_now_iso(),
        )

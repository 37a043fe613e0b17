"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in
credential_registry/models/.  Repos convert between rows and dataclasses.

Each service owns one table: the issuance service writes `credentials`,
the verification service writes `verification_logs`.  Timestamps are
stored as the same ISO-8601 text that goes over the wire.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from credential_registry.db.engine import Base


class CredentialRow(Base):
    __tablename__ = "credentials"

    # Caller-chosen id; the primary key is what makes issuance create-once.
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    holder_name: Mapped[str] = mapped_column(String(500), nullable=False)
    credential_type: Mapped[str] = mapped_column(String(255), nullable=False)
    issue_date: Mapped[str] = mapped_column(String(64), nullable=False)
    expiry_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    issuer_worker_id: Mapped[str] = mapped_column(String(255), nullable=False)
    issued_at: Mapped[str] = mapped_column(String(32), nullable=False)


class VerificationLogRow(Base):
    __tablename__ = "verification_logs"

    # Insertion order; breaks ties between entries logged in the same ms.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    log_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    credential_id: Mapped[str] = mapped_column(String(255), nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    issued_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    issued_at: Mapped[str | None] = mapped_column(String(32), nullable=True)
    verifier_worker_id: Mapped[str] = mapped_column(String(255), nullable=False)
    logged_at: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        Index("ix_verification_logs_credential_id", "credential_id"),
        Index("ix_verification_logs_logged_at", "logged_at"),
    )

"""create credentials and verification_logs

Revision ID: 3c9e1d27b4a0
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c9e1d27b4a0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "credentials",
        sa.Column("id", sa.String(length=255), primary_key=True),
        sa.Column("holder_name", sa.String(length=500), nullable=False),
        sa.Column("credential_type", sa.String(length=255), nullable=False),
        sa.Column("issue_date", sa.String(length=64), nullable=False),
        sa.Column("expiry_date", sa.String(length=64), nullable=True),
        sa.Column("issuer_worker_id", sa.String(length=255), nullable=False),
        sa.Column("issued_at", sa.String(length=32), nullable=False),
    )
    op.create_table(
        "verification_logs",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("log_id", sa.String(length=36), nullable=False, unique=True),
        sa.Column("credential_id", sa.String(length=255), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("issued_by", sa.String(length=255), nullable=True),
        sa.Column("issued_at", sa.String(length=32), nullable=True),
        sa.Column("verifier_worker_id", sa.String(length=255), nullable=False),
        sa.Column("logged_at", sa.String(length=32), nullable=False),
    )
    op.create_index(
        "ix_verification_logs_credential_id", "verification_logs", ["credential_id"]
    )
    op.create_index("ix_verification_logs_logged_at", "verification_logs", ["logged_at"])


def downgrade() -> None:
    op.drop_index("ix_verification_logs_logged_at", table_name="verification_logs")
    op.drop_index("ix_verification_logs_credential_id", table_name="verification_logs")
    op.drop_table("verification_logs")
    op.drop_table("credentials")

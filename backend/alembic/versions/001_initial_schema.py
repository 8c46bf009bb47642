"""Initial schema (file_records, audit_events).

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "file_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_id", sa.Text(), nullable=False),
        sa.Column("storage_key", sa.Text(), nullable=False),
        sa.Column("filename", sa.Text(), nullable=False),
        sa.Column("content_type", sa.Text(), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="SCANNING"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("storage_key"),
        sa.UniqueConstraint("owner_id", "filename", name="uq_file_records_owner_filename"),
        sa.CheckConstraint(
            "status IN ('SCANNING', 'CLEAN', 'THREAT_DETECTED')",
            name="ck_file_records_status",
        ),
    )
    op.create_index("ix_file_records_status_created", "file_records", ["status", "created_at"])
    op.create_index("ix_file_records_owner_created", "file_records", ["owner_id", "created_at"])
    op.create_table(
        "audit_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_id", sa.Text(), nullable=False),
        sa.Column("event_type", sa.Text(), nullable=False),
        sa.Column("event_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("ip", sa.Text(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_events_owner_created", "audit_events", ["owner_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_owner_created", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_file_records_owner_created", table_name="file_records")
    op.drop_index("ix_file_records_status_created", table_name="file_records")
    op.drop_table("file_records")

"""Create profiles, file transfers and transfer notifications.

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "a1c3e5f7b9d2"
down_revision: str | Sequence[str] | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

transfer_status = sa.Enum(
    "pending", "uploading", "transferring", "completed", "failed", name="transferstatus"
)


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(160)),
        sa.Column("is_online", sa.Boolean(), server_default=sa.false()),
        sa.Column("last_seen", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "file_transfers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("sender_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("recipient_email", sa.String(255), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("file_type", sa.String(255)),
        sa.Column("file_url", sa.String(2048)),
        sa.Column("storage_key", sa.String(1024)),
        sa.Column("status", transfer_status, nullable=False, server_default="pending"),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("transfer_code", sa.String(32), unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_file_transfers_progress"),
    )
    op.create_index(
        "ix_file_transfers_sender_created", "file_transfers", ["sender_id", "created_at"]
    )
    op.create_index(
        "ix_file_transfers_recipient_created",
        "file_transfers",
        ["recipient_email", "created_at"],
    )
    op.create_table(
        "transfer_notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "transfer_id", sa.Uuid(), sa.ForeignKey("file_transfers.id"), nullable=False
        ),
        sa.Column("recipient_email", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_transfer_notifications_recipient_unread",
        "transfer_notifications",
        ["recipient_email", "is_read"],
    )


def downgrade() -> None:
    op.drop_index("ix_transfer_notifications_recipient_unread", table_name="transfer_notifications")
    op.drop_table("transfer_notifications")
    op.drop_index("ix_file_transfers_recipient_created", table_name="file_transfers")
    op.drop_index("ix_file_transfers_sender_created", table_name="file_transfers")
    op.drop_table("file_transfers")
    op.drop_table("profiles")
    transfer_status.drop(op.get_bind(), checkfirst=True)

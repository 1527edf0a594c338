"""create email queue

Revision ID: c94a0e6f1b37
Revises: 7b2e5d81c6a9
Create Date: 2026-10-02 21:47:55.029361
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "c94a0e6f1b37"
down_revision: Union[str, Sequence[str], None] = "7b2e5d81c6a9"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "email_queue",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("recipient_email", sa.Text(), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("html_body", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("retry_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("max_retries", sa.Integer(), server_default="3", nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_email_queue_status"), "email_queue", ["status"], unique=False)
    op.create_index(op.f("ix_email_queue_created_at"), "email_queue", ["created_at"], unique=False)
    op.create_index(op.f("ix_email_queue_updated_at"), "email_queue", ["updated_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_email_queue_updated_at"), table_name="email_queue")
    op.drop_index(op.f("ix_email_queue_created_at"), table_name="email_queue")
    op.drop_index(op.f("ix_email_queue_status"), table_name="email_queue")
    op.drop_table("email_queue")

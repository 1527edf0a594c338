"""create consists

Revision ID: e1d48b3a7f92
Revises: c94a0e6f1b37
Create Date: 2026-10-18 10:12:41.508217
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "e1d48b3a7f92"
down_revision: Union[str, Sequence[str], None] = "c94a0e6f1b37"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "consists",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("in_use", sa.Boolean(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("club_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["club_id"], ["clubs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_consists_user_id"), "consists", ["user_id"], unique=False)
    op.create_index(op.f("ix_consists_club_id"), "consists", ["club_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_consists_club_id"), table_name="consists")
    op.drop_index(op.f("ix_consists_user_id"), table_name="consists")
    op.drop_table("consists")

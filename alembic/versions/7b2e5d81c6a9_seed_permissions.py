"""seed permissions

Revision ID: 7b2e5d81c6a9
Revises: 3f1c9a7d2e40
Create Date: 2026-09-21 19:11:02.604913

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "7b2e5d81c6a9"
down_revision: Union[str, Sequence[str], None] = "3f1c9a7d2e40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TITLES = ("member", "admin", "super-admin")


def upgrade() -> None:
    permissions = sa.table("permissions", sa.column("title", sa.String))
    conn = op.get_bind()
    existing = {row[0] for row in conn.execute(sa.select(permissions.c.title))}
    missing = [{"title": t} for t in TITLES if t not in existing]
    if missing:
        op.bulk_insert(permissions, missing)


def downgrade() -> None:
    op.execute("DELETE FROM permissions WHERE title IN ('member','admin','super-admin')")

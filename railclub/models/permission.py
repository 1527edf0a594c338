# railclub/models/permission.py
from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from railclub.database import Base


class Permission(Base):
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(primary_key=True)

    # "member", "admin", "super-admin"
    title: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)

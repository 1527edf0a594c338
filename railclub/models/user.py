# railclub/models/user.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from railclub.clock import utc_now_naive
from railclub.database import Base
from railclub.models.permission import Permission


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    username: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    permission_id: Mapped[int] = mapped_column(ForeignKey("permissions.id"), index=True, nullable=False)
    permission: Mapped[Permission] = relationship(lazy="joined")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)

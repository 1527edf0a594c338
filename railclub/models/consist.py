# railclub/models/consist.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from railclub.clock import utc_now_naive
from railclub.database import Base


class Consist(Base):
    """A DCC consist address (locomotives run as one unit) held by a member."""

    __tablename__ = "consists"

    id: Mapped[int] = mapped_column(primary_key=True)

    number: Mapped[int] = mapped_column(Integer, nullable=False)
    in_use: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id", ondelete="CASCADE"), index=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)

# railclub/models/application.py
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from railclub.clock import utc_now_naive
from railclub.database import Base


class Application(Base):
    """Membership application submitted through a club's public form."""

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(primary_key=True)

    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id", ondelete="CASCADE"), index=True, nullable=False)

    name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    birthday: Mapped[date | None] = mapped_column(Date, nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(120), nullable=True)

    interested_scale: Mapped[str | None] = mapped_column(String(32), nullable=True)  # "HO", "N", "O"...
    special_interests: Mapped[str | None] = mapped_column(Text, nullable=True)
    has_home_layout: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    collection_size: Mapped[str | None] = mapped_column(String(64), nullable=True)
    has_other_model_railroad_associations: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    will_agree_to_club_rules: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)

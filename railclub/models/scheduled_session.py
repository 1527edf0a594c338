# railclub/models/scheduled_session.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from railclub.database import Base


class ScheduledSession(Base):
    __tablename__ = "scheduled_sessions"

    id: Mapped[int] = mapped_column(primary_key=True)

    schedule: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id", ondelete="CASCADE"), index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

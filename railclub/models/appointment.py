# railclub/models/appointment.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from railclub.database import Base


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True)

    schedule: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    scheduled_session_id: Mapped[int | None] = mapped_column(
        ForeignKey("scheduled_sessions.id", ondelete="SET NULL"), index=True, nullable=True
    )

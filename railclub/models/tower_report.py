# railclub/models/tower_report.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from railclub.clock import utc_now_naive
from railclub.database import Base


class TowerReport(Base):
    __tablename__ = "tower_reports"

    id: Mapped[int] = mapped_column(primary_key=True)

    tower_id: Mapped[int] = mapped_column(ForeignKey("towers.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # When the inspection happened (may differ from created_at)
    report_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, index=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)

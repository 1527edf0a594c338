# railclub/models/email_queue.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from railclub.clock import utc_now_naive
from railclub.database import Base


class EmailQueueItem(Base):
    __tablename__ = "email_queue"

    id: Mapped[int] = mapped_column(primary_key=True)

    recipient_email: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    html_body: Mapped[str | None] = mapped_column(Text, nullable=True)

    # pending -> in_progress -> sent | pending (retry) | failed
    status: Mapped[str] = mapped_column(String(16), default="pending", server_default="pending", index=True, nullable=False)

    retry_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    max_retries: Mapped[int] = mapped_column(Integer, default=3, server_default="3", nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Carried for the sender; nothing here compares it to "now"
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, index=True, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, index=True, nullable=False)

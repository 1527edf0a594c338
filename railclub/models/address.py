# railclub/models/address.py
from __future__ import annotations

from sqlalchemy import Boolean, Integer, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from railclub.database import Base


class Address(Base):
    """A DCC locomotive address reserved by a member inside one club."""

    __tablename__ = "addresses"
    __table_args__ = (
        UniqueConstraint("club_id", "number", name="uq_addresses_club_number"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    number: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    in_use: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id", ondelete="CASCADE"), index=True, nullable=False)

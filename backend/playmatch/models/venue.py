"""
models/venue.py — Venue table definition.

Venues are partner spaces (board-game cafés and the like) curated by
administrators. They are listings only; game cards do not reference them.
"""

from __future__ import annotations

from datetime import datetime, time

from sqlalchemy import JSON, CheckConstraint, DateTime, String, Text, Time, func
from sqlalchemy.orm import Mapped, mapped_column

from backend.playmatch.extensions import db
from backend.playmatch.timeutils import utcnow


class Venue(db.Model):
    __tablename__ = "venues"

    __table_args__ = (
        CheckConstraint("LENGTH(TRIM(title)) > 0", name="ck_venues_title_nonempty"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    title:        Mapped[str] = mapped_column(String(200), nullable=False)
    rating:       Mapped[str | None] = mapped_column(String(20), nullable=True)
    address:      Mapped[str] = mapped_column(String(300), nullable=False)
    opening_time: Mapped[time] = mapped_column(Time, nullable=False)
    closing_time: Mapped[time] = mapped_column(Time, nullable=False)
    phone_number: Mapped[str] = mapped_column(String(50), nullable=False)
    description:  Mapped[str | None] = mapped_column(Text, nullable=True)
    photos:       Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    latitude:     Mapped[str | None] = mapped_column(String(30), nullable=True)
    longitude:    Mapped[str | None] = mapped_column(String(30), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Venue id={self.id} title={self.title!r}>"

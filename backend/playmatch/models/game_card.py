"""
models/game_card.py — GameCard (posting) and MatchedPlayer table definitions.

No business logic. No imports from services or routes.

Key design points:
  - The host is stored as a snapshot (host_* columns) taken at creation.
    host_user_id is kept as a FK for ownership checks only; the name, photo
    and city shown on the card never follow later profile edits.
  - current_players counts occupied seats INCLUDING the host, so a fresh
    card starts at 1 and is full when current_players == max_players.
    It is the column the join statement guards atomically:
        UPDATE ... SET current_players = current_players + 1
        WHERE current_players < max_players AND status = 'active' ...
  - matched_players rows are snapshots owned by the card (CASCADE). The
    UNIQUE(game_card_id, user_id) constraint is the last line of defence
    against double joins.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.playmatch.extensions import db
from backend.playmatch.models.snapshot import PlayerSnapshot
from backend.playmatch.models.user import _enum_values
from backend.playmatch.timeutils import utcnow


class GameCardStatus(str, enum.Enum):
    """
    active      — accepting players
    inactive    — closed: full, or its scheduled time has passed
    moderating  — closed by an administrator
    """
    ACTIVE     = "active"
    INACTIVE   = "inactive"
    MODERATING = "moderating"


class GameCard(db.Model):
    __tablename__ = "game_cards"

    __table_args__ = (
        CheckConstraint("LENGTH(TRIM(title)) > 0", name="ck_game_cards_title_nonempty"),
        CheckConstraint("max_players > 0", name="ck_game_cards_max_players_positive"),
        CheckConstraint("min_players > 0", name="ck_game_cards_min_players_positive"),
        CheckConstraint(
            "current_players <= max_players",
            name="ck_game_cards_capacity",
        ),
        # The sweeper scans (status, scheduled_time); the feed scans status.
        Index("idx_game_cards_status_scheduled", "status", "scheduled_time"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # ── Host snapshot ──────────────────────────────────────────────────────
    host_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    host_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    host_last_name:  Mapped[str] = mapped_column(String(100), nullable=False)
    host_photo_url:  Mapped[str | None] = mapped_column(String(500), nullable=True)
    host_city:       Mapped[str | None] = mapped_column(String(100), nullable=True)

    # ── Attributes ─────────────────────────────────────────────────────────
    title:       Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    city:        Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    category:    Mapped[str | None] = mapped_column(String(100), nullable=True)
    cover_url:   Mapped[str | None] = mapped_column(String(500), nullable=True)

    max_players:     Mapped[int] = mapped_column(Integer, nullable=False)
    min_players:     Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_players: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    scheduled_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    status: Mapped[GameCardStatus] = mapped_column(
        Enum(
            GameCardStatus,
            name="game_card_status_enum",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=GameCardStatus.ACTIVE,
    )

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

    # ── Relationships ──────────────────────────────────────────────────────

    matched_players: Mapped[list["MatchedPlayer"]] = relationship(
        "MatchedPlayer",
        back_populates="game_card",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: (MatchedPlayer.joined_at, MatchedPlayer.id),
    )

    @property
    def host(self) -> PlayerSnapshot:
        return PlayerSnapshot(
            user_id=self.host_user_id,
            first_name=self.host_first_name,
            last_name=self.host_last_name,
            photo_url=self.host_photo_url,
            city=self.host_city,
        )

    @property
    def is_full(self) -> bool:
        """Seats taken (host + matched players) have reached capacity."""
        return 1 + len(self.matched_players) >= self.max_players

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<GameCard id={self.id} title={self.title!r} "
            f"status={self.status} players={self.current_players}/{self.max_players}>"
        )


class MatchedPlayer(db.Model):
    __tablename__ = "matched_players"

    __table_args__ = (
        UniqueConstraint("game_card_id", "user_id", name="uq_matched_players_card_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    game_card_id: Mapped[int] = mapped_column(
        ForeignKey("game_cards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Snapshot of the player's profile at join time.
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name:  Mapped[str] = mapped_column(String(100), nullable=False)
    photo_url:  Mapped[str | None] = mapped_column(String(500), nullable=True)
    city:       Mapped[str | None] = mapped_column(String(100), nullable=True)

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    game_card: Mapped["GameCard"] = relationship(
        "GameCard",
        back_populates="matched_players",
    )

    @property
    def snapshot(self) -> PlayerSnapshot:
        return PlayerSnapshot(
            user_id=self.user_id,
            first_name=self.first_name,
            last_name=self.last_name,
            photo_url=self.photo_url,
            city=self.city,
        )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<MatchedPlayer id={self.id} "
            f"game_card_id={self.game_card_id} "
            f"user_id={self.user_id}>"
        )

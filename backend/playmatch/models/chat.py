"""
models/chat.py — Chat, ChatMember and ChatMessage table definitions.

No business logic. No imports from services or routes.

  - One chat per game card: UNIQUE(game_card_id). A second materialization
    attempt for the same card fails at the DB even if the service-level
    existence check raced.
  - chat_members rows are snapshots of host + players at the instant the
    chat was created. Leaving deletes the member row; the chat and its
    messages stay.
  - chat_messages is append-only. Each row carries a sender snapshot.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.playmatch.extensions import db
from backend.playmatch.models.snapshot import PlayerSnapshot
from backend.playmatch.timeutils import utcnow


class Chat(db.Model):
    __tablename__ = "chats"

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    game_card_id: Mapped[int] = mapped_column(
        ForeignKey("game_cards.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    members: Mapped[list["ChatMember"]] = relationship(
        "ChatMember",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: ChatMember.id,
    )

    messages: Mapped[list["ChatMessage"]] = relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: (ChatMessage.created_at, ChatMessage.id),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Chat id={self.id} game_card_id={self.game_card_id}>"


class ChatMember(db.Model):
    __tablename__ = "chat_members"

    __table_args__ = (
        UniqueConstraint("chat_id", "user_id", name="uq_chat_members_chat_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    chat_id: Mapped[int] = mapped_column(
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name:  Mapped[str] = mapped_column(String(100), nullable=False)
    photo_url:  Mapped[str | None] = mapped_column(String(500), nullable=True)

    chat: Mapped["Chat"] = relationship("Chat", back_populates="members")

    @classmethod
    def from_snapshot(cls, snapshot: PlayerSnapshot) -> "ChatMember":
        return cls(
            user_id=snapshot.user_id,
            first_name=snapshot.first_name,
            last_name=snapshot.last_name,
            photo_url=snapshot.photo_url,
        )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<ChatMember chat_id={self.chat_id} user_id={self.user_id}>"


class ChatMessage(db.Model):
    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(primary_key=True)

    chat_id: Mapped[int] = mapped_column(
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Sender snapshot
    sender_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    sender_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    sender_last_name:  Mapped[str] = mapped_column(String(100), nullable=False)
    sender_photo_url:  Mapped[str | None] = mapped_column(String(500), nullable=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    chat: Mapped["Chat"] = relationship("Chat", back_populates="messages")

    def __repr__(self) -> str:  # pragma: no cover
        return f"<ChatMessage id={self.id} chat_id={self.chat_id}>"

"""
services/chat_service.py — Group chats materialised from full game cards.

A chat is created exactly once per game card, at the moment the card is
observed full. Its member list is a snapshot of the host plus every matched
player at that instant; later profile edits and later card edits never
touch it.

Authorization rules:
  - Reading or posting messages: current chat members only (NOT_CHAT_MEMBER, 403)
  - Leaving: any authenticated user; leaving a chat you are not in is a no-op

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.playmatch.errors import AppError, ErrorCode
from backend.playmatch.models.chat import Chat, ChatMember, ChatMessage
from backend.playmatch.models.game_card import GameCard
from backend.playmatch.models.snapshot import PlayerSnapshot
from backend.playmatch.services.user_service import get_user_or_404
from backend.playmatch.timeutils import isoformat_utc

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_chat_or_404(chat_id: int, session: Session) -> Chat:
    """Returns the Chat or raises CHAT_NOT_FOUND (404)."""
    chat = session.get(Chat, chat_id)
    if chat is None:
        raise AppError(
            ErrorCode.CHAT_NOT_FOUND,
            f"Chat {chat_id} does not exist.",
            404,
        )
    return chat


def _is_member(chat_id: int, user_id: int, session: Session) -> bool:
    member_id = session.execute(
        select(ChatMember.id).where(
            ChatMember.chat_id == chat_id,
            ChatMember.user_id == user_id,
        )
    ).scalar_one_or_none()
    return member_id is not None


def _require_member(chat_id: int, user_id: int, session: Session) -> None:
    if not _is_member(chat_id, user_id, session):
        raise AppError(
            ErrorCode.NOT_CHAT_MEMBER,
            f"You are not a member of chat {chat_id}.",
            403,
        )


def build_chat_dict(chat: Chat) -> dict:
    return {
        "id": chat.id,
        "title": chat.title,
        "game_card_id": chat.game_card_id,
        "created_at": isoformat_utc(chat.created_at),
        "members": [
            {
                "user_id": m.user_id,
                "first_name": m.first_name,
                "last_name": m.last_name,
                "photo_url": m.photo_url,
            }
            for m in chat.members
        ],
    }


def build_message_dict(message: ChatMessage) -> dict:
    return {
        "id": message.id,
        "chat_id": message.chat_id,
        "sender": {
            "user_id": message.sender_user_id,
            "first_name": message.sender_first_name,
            "last_name": message.sender_last_name,
            "photo_url": message.sender_photo_url,
        },
        "text": message.content,
        "created_at": isoformat_utc(message.created_at),
    }


# ── Public service functions ───────────────────────────────────────────────

def materialize_if_full(game_card: GameCard, session: Session) -> Chat | None:
    """
    Creates the group chat for a full game card.

    Returns the new Chat, or None when the card is not full or a chat for it
    already exists. Safe to call any number of times for the same card.
    """
    if not game_card.is_full:
        return None

    existing_id = session.execute(
        select(Chat.id).where(Chat.game_card_id == game_card.id)
    ).scalar_one_or_none()
    if existing_id is not None:
        return None

    snapshots: list[PlayerSnapshot] = [game_card.host]
    snapshots.extend(player.snapshot for player in game_card.matched_players)

    chat = Chat(
        title=game_card.title,
        game_card_id=game_card.id,
        members=[ChatMember.from_snapshot(s) for s in snapshots],
    )
    # Two transactions can both pass the existence check; UNIQUE(game_card_id)
    # lets only one insert land. The savepoint keeps the loser's own work.
    try:
        with session.begin_nested():
            session.add(chat)
            session.flush()
    except IntegrityError:
        logger.info("Chat for game card %s already created by another request", game_card.id)
        return None

    logger.info(
        "Materialised chat %s for game card %s with %d members",
        chat.id, game_card.id, len(snapshots),
    )
    return chat


def list_user_chats(user_id: int, session: Session) -> list[dict]:
    """Chats the user is currently a member of, newest first."""
    stmt = (
        select(Chat)
        .join(ChatMember, ChatMember.chat_id == Chat.id)
        .where(ChatMember.user_id == user_id)
        .order_by(Chat.created_at.desc(), Chat.id.desc())
    )
    chats = session.execute(stmt).scalars().all()
    return [build_chat_dict(c) for c in chats]


def leave_chat(user_id: int, chat_id: int, session: Session) -> None:
    """
    Removes the caller's member row. The chat and its history stay for the
    remaining members.

    Raises:
      AppError(CHAT_NOT_FOUND, 404)
    """
    _get_chat_or_404(chat_id, session)

    result = session.execute(
        delete(ChatMember)
        .where(
            ChatMember.chat_id == chat_id,
            ChatMember.user_id == user_id,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.info("User %s left chat %s", user_id, chat_id)
    session.flush()


def send_message(user_id: int, chat_id: int, text: str, session: Session) -> ChatMessage:
    """
    Appends a message with a snapshot of the sender's current profile.

    Raises:
      AppError(CHAT_NOT_FOUND, 404)
      AppError(NOT_CHAT_MEMBER, 403)
    """
    _get_chat_or_404(chat_id, session)
    _require_member(chat_id, user_id, session)

    sender = PlayerSnapshot.from_user(get_user_or_404(user_id, session))
    message = ChatMessage(
        chat_id=chat_id,
        sender_user_id=sender.user_id,
        sender_first_name=sender.first_name,
        sender_last_name=sender.last_name,
        sender_photo_url=sender.photo_url,
        content=text,
    )
    session.add(message)
    session.flush()
    return message


def list_messages(user_id: int, chat_id: int, session: Session) -> list[ChatMessage]:
    """Messages in posting order. Members only."""
    _get_chat_or_404(chat_id, session)
    _require_member(chat_id, user_id, session)

    stmt = (
        select(ChatMessage)
        .where(ChatMessage.chat_id == chat_id)
        .order_by(ChatMessage.created_at, ChatMessage.id)
    )
    return list(session.execute(stmt).scalars().all())

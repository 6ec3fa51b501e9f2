"""
Unit tests for chat_service: materialisation rules and member-only access.

DB-free; the session is a MagicMock.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from backend.playmatch.errors import AppError, ErrorCode
from backend.playmatch.models.chat import Chat, ChatMessage
from backend.playmatch.models.snapshot import PlayerSnapshot
from backend.playmatch.services import chat_service


def _full_card(is_full: bool = True) -> SimpleNamespace:
    return SimpleNamespace(
        id=5,
        title="Catan night",
        is_full=is_full,
        host=PlayerSnapshot(user_id=1, first_name="Hana", last_name="Host"),
        matched_players=[
            SimpleNamespace(snapshot=PlayerSnapshot(user_id=2, first_name="Bob", last_name="B")),
            SimpleNamespace(snapshot=PlayerSnapshot(user_id=3, first_name="Cy", last_name="C")),
        ],
    )


# ═══════════════════════════════════════════════════════════════════════════
# materialize_if_full
# ═══════════════════════════════════════════════════════════════════════════

class TestMaterializeIfFull:

    def test_card_with_room_creates_nothing(self):
        session = MagicMock()

        assert chat_service.materialize_if_full(_full_card(is_full=False), session) is None

        session.execute.assert_not_called()
        session.add.assert_not_called()

    def test_existing_chat_is_not_duplicated(self):
        session = MagicMock()
        session.execute.return_value.scalar_one_or_none.return_value = 77

        assert chat_service.materialize_if_full(_full_card(), session) is None

        session.add.assert_not_called()

    def test_full_card_gets_chat_with_host_then_players(self):
        session = MagicMock()
        session.execute.return_value.scalar_one_or_none.return_value = None

        chat = chat_service.materialize_if_full(_full_card(), session)

        assert isinstance(chat, Chat)
        session.add.assert_called_once_with(chat)
        session.flush.assert_called_once()
        assert chat.title == "Catan night"
        assert chat.game_card_id == 5
        assert [m.user_id for m in chat.members] == [1, 2, 3]
        assert chat.members[0].first_name == "Hana"

    def test_chat_inserted_concurrently_is_not_an_error(self):
        session = MagicMock()
        session.execute.return_value.scalar_one_or_none.return_value = None
        session.flush.side_effect = IntegrityError(
            "INSERT INTO chats", {}, Exception("uq_chats_game_card")
        )

        assert chat_service.materialize_if_full(_full_card(), session) is None

        session.begin_nested.assert_called_once()
        session.begin_nested.return_value.__exit__.assert_called_once()
        session.rollback.assert_not_called()


# ═══════════════════════════════════════════════════════════════════════════
# leave / send / list
# ═══════════════════════════════════════════════════════════════════════════

def test_leave_unknown_chat_is_chat_not_found():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        chat_service.leave_chat(user_id=1, chat_id=404, session=session)

    assert exc_info.value.code == ErrorCode.CHAT_NOT_FOUND
    assert exc_info.value.http_status == 404
    session.execute.assert_not_called()


def test_leave_when_not_a_member_is_a_noop():
    session = MagicMock()
    session.get.return_value = SimpleNamespace(id=3)
    session.execute.return_value.rowcount = 0

    chat_service.leave_chat(user_id=1, chat_id=3, session=session)

    session.execute.assert_called_once()


def test_send_message_by_non_member_is_forbidden():
    session = MagicMock()
    session.get.return_value = SimpleNamespace(id=3)
    session.execute.return_value.scalar_one_or_none.return_value = None

    with pytest.raises(AppError) as exc_info:
        chat_service.send_message(user_id=9, chat_id=3, text="hi", session=session)

    assert exc_info.value.code == ErrorCode.NOT_CHAT_MEMBER
    assert exc_info.value.http_status == 403
    session.add.assert_not_called()


def test_send_message_snapshots_sender():
    session = MagicMock()
    sender = SimpleNamespace(
        id=2, first_name="Bob", last_name="B", photo_url="/p.png", city=None,
    )
    session.get.side_effect = lambda model, ident, **kw: (
        SimpleNamespace(id=3) if model is Chat else sender
    )
    session.execute.return_value.scalar_one_or_none.return_value = 41

    message = chat_service.send_message(user_id=2, chat_id=3, text="see you at 7", session=session)

    assert isinstance(message, ChatMessage)
    assert message.chat_id == 3
    assert message.sender_user_id == 2
    assert message.sender_first_name == "Bob"
    assert message.sender_photo_url == "/p.png"
    assert message.content == "see you at 7"
    session.add.assert_called_once_with(message)


def test_list_messages_by_non_member_is_forbidden():
    session = MagicMock()
    session.get.return_value = SimpleNamespace(id=3)
    session.execute.return_value.scalar_one_or_none.return_value = None

    with pytest.raises(AppError) as exc_info:
        chat_service.list_messages(user_id=9, chat_id=3, session=session)

    assert exc_info.value.code == ErrorCode.NOT_CHAT_MEMBER

"""
routes/chats.py — Chat route handlers.

Chats are never created through the API; they appear when a posting fills.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/chats):
  DELETE /chats/:id/leave       → 200  leave (no-op if not a member)
  POST   /chats/:id/messages    → 201  members only (403 NOT_CHAT_MEMBER)
  GET    /chats/:id/messages    → 200  members only
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.playmatch.extensions import db
from backend.playmatch.middleware.auth_middleware import require_auth
from backend.playmatch.schemas.chat_schema import SendMessageSchema
from backend.playmatch.services import chat_service

chats_bp = Blueprint("chats", __name__)


@chats_bp.route("/<int:chat_id>/leave", methods=["DELETE"])
@require_auth
def leave_chat(chat_id: int):
    """DELETE /chats/:id/leave — the posting's players and status are untouched."""
    chat_service.leave_chat(
        user_id=g.user_id,
        chat_id=chat_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"message": "Left chat successfully."}, "warnings": []}), 200


@chats_bp.route("/<int:chat_id>/messages", methods=["POST"])
@require_auth
def send_message(chat_id: int):
    """POST /chats/:id/messages — body {"text": "..."}"""
    data = SendMessageSchema().load(request.get_json(force=True, silent=True) or {})
    message = chat_service.send_message(
        user_id=g.user_id,
        chat_id=chat_id,
        text=data["text"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": chat_service.build_message_dict(message), "warnings": []}), 201


@chats_bp.route("/<int:chat_id>/messages", methods=["GET"])
@require_auth
def list_messages(chat_id: int):
    """GET /chats/:id/messages"""
    messages = chat_service.list_messages(
        user_id=g.user_id,
        chat_id=chat_id,
        session=db.session,
    )
    return jsonify({
        "data": [chat_service.build_message_dict(m) for m in messages],
        "warnings": [],
    }), 200

"""
routes/users.py — Profile, hosted postings and chat list handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/users):
  GET    /users/me/profile          → 200
  PATCH  /users/me/profile          → 200  sparse update
  GET    /users/:id/postings        → 200  paginated cards hosted by a user
  GET    /users/me/chats            → 200  chats the caller is a member of
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.playmatch.extensions import db
from backend.playmatch.middleware.auth_middleware import require_auth
from backend.playmatch.schemas.auth_schema import PatchProfileSchema
from backend.playmatch.schemas.game_card_schema import UserGameCardsQuerySchema
from backend.playmatch.services import chat_service, matchmaking_service, user_service

users_bp = Blueprint("users", __name__)


@users_bp.route("/me/profile", methods=["GET"])
@require_auth
def get_profile():
    """GET /users/me/profile"""
    result = user_service.get_profile(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/me/profile", methods=["PATCH"])
@require_auth
def update_profile():
    """PATCH /users/me/profile — only non-empty fields are written."""
    data = PatchProfileSchema().load(request.get_json(force=True, silent=True) or {})
    result = user_service.update_profile(
        user_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/<int:user_id>/postings", methods=["GET"])
@require_auth
def list_user_postings(user_id: int):
    """GET /users/:id/postings?status&page&limit"""
    query = UserGameCardsQuerySchema().load(request.args.to_dict())
    result = matchmaking_service.list_user_game_cards(
        user_id=user_id,
        status=query["status"],
        page=query["page"],
        limit=query["limit"],
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/me/chats", methods=["GET"])
@require_auth
def list_my_chats():
    """GET /users/me/chats"""
    result = chat_service.list_user_chats(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200

"""
routes/postings.py — Game card (posting) route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/postings):
  POST   /postings             → 201  create (caller becomes host)
  GET    /postings             → 200  active feed, excluding caller's own cards
  GET    /postings/filters     → 200  distinct cities and categories
  GET    /postings/:id         → 200  single card with players
  PUT    /postings/join        → 200  join; 400 ALREADY_MEMBER / HOST_CANNOT_JOIN /
                                       NOT_ACCEPTING_MEMBERS, 404 POSTING_NOT_FOUND
  PATCH  /postings/:id         → 200  sparse update, host only (403 otherwise)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.playmatch.extensions import db
from backend.playmatch.middleware.auth_middleware import require_auth
from backend.playmatch.schemas.game_card_schema import (
    ActiveGameCardsQuerySchema,
    CreateGameCardSchema,
    JoinGameCardSchema,
    PatchGameCardSchema,
)
from backend.playmatch.services import matchmaking_service

postings_bp = Blueprint("postings", __name__)


@postings_bp.route("", methods=["POST"])
@require_auth
def create_posting():
    """POST /postings — Create a game card hosted by the caller."""
    data = CreateGameCardSchema().load(request.get_json(force=True, silent=True) or {})
    card = matchmaking_service.create_game_card(
        host_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": matchmaking_service.build_game_card_dict(card), "warnings": []}), 201


@postings_bp.route("", methods=["GET"])
@require_auth
def list_postings():
    """GET /postings?city&category&from&to&sort&page&limit"""
    filters = ActiveGameCardsQuerySchema().load(request.args.to_dict())
    result = matchmaking_service.list_active_game_cards(
        caller_id=g.user_id,
        filters=filters,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@postings_bp.route("/filters", methods=["GET"])
@require_auth
def get_filters():
    """GET /postings/filters"""
    result = matchmaking_service.get_filter_values(session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@postings_bp.route("/<int:posting_id>", methods=["GET"])
@require_auth
def get_posting(posting_id: int):
    """GET /postings/:id"""
    card = matchmaking_service.get_game_card(
        game_card_id=posting_id,
        session=db.session,
    )
    return jsonify({"data": matchmaking_service.build_game_card_dict(card), "warnings": []}), 200


@postings_bp.route("/join", methods=["PUT"])
@require_auth
def join_posting():
    """PUT /postings/join — body {"posting_id": <int>}"""
    data = JoinGameCardSchema().load(request.get_json(force=True, silent=True) or {})
    card = matchmaking_service.join_game_card(
        user_id=g.user_id,
        game_card_id=data["posting_id"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": matchmaking_service.build_game_card_dict(card), "warnings": []}), 200


@postings_bp.route("/<int:posting_id>", methods=["PATCH"])
@require_auth
def update_posting(posting_id: int):
    """PATCH /postings/:id — Host only. Absent, null, "" and 0 fields are left as they are."""
    data = PatchGameCardSchema().load(request.get_json(force=True, silent=True) or {})
    card = matchmaking_service.update_game_card(
        host_id=g.user_id,
        game_card_id=posting_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": matchmaking_service.build_game_card_dict(card), "warnings": []}), 200

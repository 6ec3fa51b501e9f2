"""
routes/admin.py — Moderation and venue management. ADMIN role only.

Every handler is wrapped in @require_admin: 401 without a valid token,
403 FORBIDDEN for a USER token. Services never look at roles.

Endpoints (base url_prefix=/api/v1/admin):
  GET    /admin/postings          → 200  every card, paginated
  GET    /admin/postings/:id      → 200
  POST   /admin/postings/:id      → 200  set status (JSON body or form field)
  POST   /admin/venues            → 201
  GET    /admin/venues            → 200
  GET    /admin/venues/:id        → 200
  PATCH  /admin/venues/:id        → 200  sparse update
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.playmatch.extensions import db
from backend.playmatch.middleware.auth_middleware import require_admin
from backend.playmatch.schemas.game_card_schema import PaginationSchema, SetStatusSchema
from backend.playmatch.schemas.venue_schema import CreateVenueSchema, PatchVenueSchema
from backend.playmatch.services import matchmaking_service, venue_service

admin_bp = Blueprint("admin", __name__)


# ── Postings ───────────────────────────────────────────────────────────────

@admin_bp.route("/postings", methods=["GET"])
@require_admin
def list_postings():
    """GET /admin/postings?page&limit"""
    query = PaginationSchema().load(request.args.to_dict())
    result = matchmaking_service.list_all_game_cards(
        page=query["page"],
        limit=query["limit"],
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@admin_bp.route("/postings/<int:posting_id>", methods=["GET"])
@require_admin
def get_posting(posting_id: int):
    """GET /admin/postings/:id"""
    card = matchmaking_service.get_game_card(
        game_card_id=posting_id,
        session=db.session,
    )
    return jsonify({"data": matchmaking_service.build_game_card_dict(card), "warnings": []}), 200


@admin_bp.route("/postings/<int:posting_id>", methods=["POST"])
@require_admin
def set_posting_status(posting_id: int):
    """POST /admin/postings/:id — {"status": "active" | "inactive" | "moderating"}"""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form.to_dict()
    data = SetStatusSchema().load(payload)
    card = matchmaking_service.admin_set_status(
        game_card_id=posting_id,
        status=data["status"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": matchmaking_service.build_game_card_dict(card), "warnings": []}), 200


# ── Venues ─────────────────────────────────────────────────────────────────

@admin_bp.route("/venues", methods=["POST"])
@require_admin
def create_venue():
    """POST /admin/venues"""
    data = CreateVenueSchema().load(request.get_json(force=True, silent=True) or {})
    venue = venue_service.create_venue(data=data, session=db.session)
    db.session.commit()
    return jsonify({"data": venue_service.build_venue_dict(venue), "warnings": []}), 201


@admin_bp.route("/venues", methods=["GET"])
@require_admin
def list_venues():
    """GET /admin/venues"""
    venues = venue_service.list_venues(session=db.session)
    return jsonify({
        "data": [venue_service.build_venue_dict(v) for v in venues],
        "warnings": [],
    }), 200


@admin_bp.route("/venues/<int:venue_id>", methods=["GET"])
@require_admin
def get_venue(venue_id: int):
    """GET /admin/venues/:id"""
    venue = venue_service.get_venue(venue_id=venue_id, session=db.session)
    return jsonify({"data": venue_service.build_venue_dict(venue), "warnings": []}), 200


@admin_bp.route("/venues/<int:venue_id>", methods=["PATCH"])
@require_admin
def update_venue(venue_id: int):
    """PATCH /admin/venues/:id"""
    data = PatchVenueSchema().load(request.get_json(force=True, silent=True) or {})
    venue = venue_service.update_venue(
        venue_id=venue_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": venue_service.build_venue_dict(venue), "warnings": []}), 200

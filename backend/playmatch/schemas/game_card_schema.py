"""
schemas/game_card_schema.py — Marshmallow schemas for posting (game card) endpoints.

Validation responsibility:
  - This file: field types, non-empty checks, capacity ranges, min <= max,
    query-string parsing (filters, pagination).
  - services/matchmaking_service.py:
      - POSTING_NOT_FOUND, USER_NOT_FOUND (DB lookups)
      - FORBIDDEN (host-only update)
      - ALREADY_MEMBER / HOST_CANNOT_JOIN / NOT_ACCEPTING_MEMBERS
      - CAPACITY_BELOW_PLAYERS (depends on seats already taken)

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from datetime import timezone

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    pre_load,
    validate,
    validates_schema,
)

from backend.playmatch.errors import ErrorCode
from backend.playmatch.models.game_card import GameCardStatus


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _non_blank(max_len: int) -> list:
    return [
        validate.Length(min=1, max=max_len),
        _validate_non_empty_after_trim,
    ]


class CreateGameCardSchema(Schema):
    """
    POST /postings

    Required: title, description, city, max_players, scheduled_time.
    Capacity counts the host's own seat, so max_players=1 gives a card that
    is full (and closed) as soon as it is created. min_players defaults to 1.
    """

    title       = fields.Str(required=True, validate=_non_blank(200))
    description = fields.Str(required=True, validate=_non_blank(5000))
    city        = fields.Str(required=True, validate=_non_blank(100))
    category    = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=100))
    cover_url   = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=500))

    max_players = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="max_players must be a positive integer."),
    )
    min_players = fields.Int(
        load_default=1,
        strict=True,
        validate=validate.Range(min=1, error="min_players must be a positive integer."),
    )

    # ISO-8601. A timezone-naive value is read as UTC.
    scheduled_time = fields.AwareDateTime(required=True, default_timezone=timezone.utc)

    @validates_schema
    def validate_capacity(self, data: dict, **kwargs) -> None:
        if data.get("min_players", 1) > data.get("max_players", 0):
            raise ValidationError(
                {"min_players": ["min_players must not exceed max_players."]}
            )


class PatchGameCardSchema(Schema):
    """
    PATCH /postings/:id

    Field-presence contract: only keys that are present AND carry a non-zero
    value are applied. None, "" and 0 are removed by drop_zero_values before
    validation, so the service can treat "key in data" as "overwrite".

    status is not patchable here; hosts cannot reopen a closed card.
    """

    title       = fields.Str(validate=_non_blank(200))
    description = fields.Str(validate=_non_blank(5000))
    city        = fields.Str(validate=_non_blank(100))
    category    = fields.Str(validate=validate.Length(max=100))
    cover_url   = fields.Str(validate=validate.Length(max=500))

    max_players = fields.Int(
        strict=True,
        validate=validate.Range(min=1, error="max_players must be a positive integer."),
    )
    min_players = fields.Int(
        strict=True,
        validate=validate.Range(min=1, error="min_players must be a positive integer."),
    )
    scheduled_time = fields.AwareDateTime(default_timezone=timezone.utc)

    @pre_load
    def drop_zero_values(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {
            key: value
            for key, value in data.items()
            if value is not None and value != "" and not (
                isinstance(value, int) and not isinstance(value, bool) and value == 0
            )
        }

    @validates_schema
    def validate_capacity(self, data: dict, **kwargs) -> None:
        if "min_players" in data and "max_players" in data:
            if data["min_players"] > data["max_players"]:
                raise ValidationError(
                    {"min_players": ["min_players must not exceed max_players."]}
                )


class JoinGameCardSchema(Schema):
    """PUT /postings/join"""

    posting_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="posting_id must be a positive integer."),
    )


class SetStatusSchema(Schema):
    """POST /admin/postings/:id — any enumerated status."""

    status = fields.Enum(
        GameCardStatus,
        required=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_STATUS},
    )


def _int_or_none(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class PaginationSchema(Schema):
    """
    page/limit query parameters. A missing, unparseable or out-of-range
    value falls back to the default (page 1, limit 10) instead of failing.
    """

    page  = fields.Int(load_default=1, validate=validate.Range(min=1))
    limit = fields.Int(load_default=10, validate=validate.Range(min=1, max=100))

    @pre_load
    def fall_back_to_defaults(self, data, **kwargs):
        if not hasattr(data, "get"):
            return data
        data = dict(data)

        page = _int_or_none(data.get("page"))
        data["page"] = page if page is not None and page >= 1 else 1

        limit = _int_or_none(data.get("limit"))
        data["limit"] = limit if limit is not None and 1 <= limit <= 100 else 10
        return data


class ActiveGameCardsQuerySchema(PaginationSchema):
    """GET /postings?city&category&from&to&sort&page&limit"""

    city     = fields.Str(load_default=None)
    category = fields.Str(load_default=None)
    # "from"/"to" are Python keywords, hence data_key.
    scheduled_from = fields.AwareDateTime(data_key="from", load_default=None, default_timezone=timezone.utc)
    scheduled_to   = fields.AwareDateTime(data_key="to", load_default=None, default_timezone=timezone.utc)
    sort = fields.Str(load_default="asc", validate=validate.OneOf(["asc", "desc"]))

    @pre_load
    def fall_back_to_ascending(self, data, **kwargs):
        if not hasattr(data, "get"):
            return data
        data = dict(data)
        if data.get("sort") not in ("asc", "desc"):
            data["sort"] = "asc"
        return data


class UserGameCardsQuerySchema(PaginationSchema):
    """GET /users/:id/postings?status&page&limit"""

    status = fields.Enum(
        GameCardStatus,
        load_default=None,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_STATUS},
    )

"""
schemas/venue_schema.py — Marshmallow schemas for admin venue endpoints.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, pre_load, validate


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateVenueSchema(Schema):
    """POST /admin/venues"""

    title = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=200), _validate_non_empty_after_trim],
    )
    address = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=300), _validate_non_empty_after_trim],
    )
    # "HH:MM" or "HH:MM:SS"
    opening_time = fields.Time(required=True)
    closing_time = fields.Time(required=True)
    phone_number = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=50), _validate_non_empty_after_trim],
    )

    rating      = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=20))
    description = fields.Str(load_default=None, allow_none=True)
    photos      = fields.List(fields.Str(validate=validate.Length(max=500)), load_default=list)
    latitude    = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=30))
    longitude   = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=30))


class PatchVenueSchema(Schema):
    """
    PATCH /admin/venues/:id

    Same sparse-update contract as game cards: null, "" and [] are dropped
    before validation and never overwrite stored values.
    """

    title        = fields.Str(validate=[validate.Length(min=1, max=200), _validate_non_empty_after_trim])
    address      = fields.Str(validate=[validate.Length(min=1, max=300), _validate_non_empty_after_trim])
    opening_time = fields.Time()
    closing_time = fields.Time()
    phone_number = fields.Str(validate=[validate.Length(min=1, max=50), _validate_non_empty_after_trim])
    rating       = fields.Str(validate=validate.Length(max=20))
    description  = fields.Str()
    photos       = fields.List(fields.Str(validate=validate.Length(max=500)))
    latitude     = fields.Str(validate=validate.Length(max=30))
    longitude    = fields.Str(validate=validate.Length(max=30))

    @pre_load
    def drop_empty_values(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {k: v for k, v in data.items() if v not in (None, "", [])}

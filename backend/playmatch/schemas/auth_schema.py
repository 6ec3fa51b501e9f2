"""
schemas/auth_schema.py — Marshmallow schemas for authentication and profile endpoints.

Validation responsibility:
  - This file: field types, lengths, formats.
  - services/auth_service.py: DUPLICATE_EMAIL (requires a DB lookup).

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — it requires an active Flask app context
           and breaks unit tests. See extensions.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, post_load, pre_load, validate, validates


def _validate_non_empty_after_trim(value: str) -> None:
    """Rejects blank or whitespace-only strings."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class RegisterSchema(Schema):
    """
    POST /auth/register

    Field rules:
      email      : valid email format
      password   : min 8 chars, at least one letter and one digit
      first_name : required, non-blank, max 100
      last_name  : required, non-blank, max 100
      photo_url, city, about_user : optional profile fields

    Public signup always creates a USER account; any user_type sent by the
    client is ignored. Administrators are created with `flask create-admin`.
    """

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(required=True, load_only=True)

    first_name = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=100), _validate_non_empty_after_trim],
    )
    last_name = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=100), _validate_non_empty_after_trim],
    )

    photo_url  = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=500))
    city       = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=100))
    about_user = fields.Str(load_default=None, allow_none=True)

    class Meta:
        # Older clients still post user_type; it is dropped, never trusted.
        unknown = "exclude"

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        if not any(c.isalpha() for c in value):
            raise ValidationError("Password must contain at least one letter.")
        if not any(c.isdigit() for c in value):
            raise ValidationError("Password must contain at least one digit.")

    @post_load
    def normalise_email(self, data: dict, **kwargs) -> dict:
        data["email"] = data["email"].strip().lower()
        return data


class LoginSchema(Schema):
    """
    POST /auth/login

    Accepts email + password. Credential correctness is checked in
    auth_service.py (INVALID_CREDENTIALS, 401).
    """

    email = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)

    @post_load
    def normalise_email(self, data: dict, **kwargs) -> dict:
        data["email"] = data["email"].strip().lower()
        return data


class RefreshTokenSchema(Schema):
    """POST /auth/refresh and POST /auth/logout."""

    refresh_token = fields.Str(required=True)


class PatchProfileSchema(Schema):
    """
    PATCH /users/me/profile

    Sparse update: keys whose value is null or an empty string are removed
    before validation, so they never overwrite stored values.
    """

    first_name = fields.Str(validate=[validate.Length(min=1, max=100), _validate_non_empty_after_trim])
    last_name  = fields.Str(validate=[validate.Length(min=1, max=100), _validate_non_empty_after_trim])
    photo_url  = fields.Str(validate=validate.Length(max=500))
    city       = fields.Str(validate=validate.Length(max=100))
    about_user = fields.Str()

    @pre_load
    def drop_empty_values(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {k: v for k, v in data.items() if v is not None and v != ""}

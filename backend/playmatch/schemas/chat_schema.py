"""
schemas/chat_schema.py — Marshmallow schemas for chat endpoints.

Membership checks (NOT_CHAT_MEMBER) live in services/chat_service.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("Message text must not be blank.")


class SendMessageSchema(Schema):
    """POST /chats/:id/messages — body {"text": "..."}"""

    text = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=4000, error="Message text must be between 1 and 4000 characters."),
            _validate_non_empty_after_trim,
        ],
    )

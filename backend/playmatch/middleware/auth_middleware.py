"""
middleware/auth_middleware.py — JWT authentication decorators.

@require_auth:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Decodes and verifies the JWT signature
  3. Checks token expiry
  4. Attaches user_id (int) and user_type (str) to flask.g
  5. Raises the appropriate 401 AppError if any step fails

@require_admin:
  Runs the same authentication, then raises FORBIDDEN (403) unless the
  token's user_type claim is ADMIN. This is the only role check in the
  system; services never look at roles.

Middleware = authentication (401) and role gating (403).
Services = ownership/membership authorization (403).
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from backend.playmatch.errors import AppError, ErrorCode
from backend.playmatch.models.user import UserType


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

    Usage:
        @postings_bp.route("/", methods=["GET"])
        @require_auth
        def list_postings():
            user_id = g.user_id  # always an int when this runs
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def require_admin(f: Callable) -> Callable:
    """Route decorator: authenticated AND user_type == ADMIN."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        if g.user_type != UserType.ADMIN.value:
            raise AppError(
                ErrorCode.FORBIDDEN,
                "Administrator privileges are required for this action.",
                403,
            )
        return f(*args, **kwargs)

    return decorated


def _authenticate_request() -> None:
    """
    Performs the full JWT authentication sequence and sets flask.g.user_id
    and flask.g.user_type.

    Raises AppError on any authentication failure (never returns a response
    directly — error propagates to the global Flask error handler).
    """
    auth_header = request.headers.get("Authorization", "")

    # ── Step 1: Require Authorization header ──────────────────────────────
    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    # ── Step 2: Parse "Bearer <token>" format ─────────────────────────────
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    raw_token = parts[1]

    # ── Step 3: Decode and verify the JWT ─────────────────────────────────
    try:
        payload = jwt.decode(
            raw_token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Use POST /auth/refresh to obtain a new one.",
            401,
        )
    except jwt.InvalidTokenError:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
            401,
        )

    # ── Step 4: Extract and validate the sub (user_id) claim ──────────────
    sub = payload.get("sub")
    if sub is None:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is missing the required 'sub' claim.",
            401,
        )

    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is not a valid user ID.",
            401,
        )

    # ── Step 5: Attach identity to flask.g ────────────────────────────────
    # Routes pass these to services as plain values.
    g.user_id = user_id
    g.user_type = payload.get("user_type", UserType.USER.value)

"""
services/auth_service.py — Authentication business logic.

Responsibilities:
  - User registration and credential validation
  - JWT access token creation (HS256)
  - Refresh token lifecycle (creation, validation, revocation)
  - Password hashing (bcrypt) and verification

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or HTTP routing
  - current_app.config is used ONLY to read JWT settings and bcrypt cost.

Token design:
  - Access token: JWT, HS256, sub = user_id (str), plus first_name,
    last_name and user_type claims so the request layer can gate admin
    routes without a DB round trip.
  - Refresh token: cryptographically random hex string, stored in DB as
    SHA-256 hash (never the raw value). Revoked on logout.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.playmatch.errors import AppError, ErrorCode
from backend.playmatch.models.refresh_token import RefreshToken
from backend.playmatch.models.user import User, UserType
from backend.playmatch.timeutils import isoformat_utc

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw token string. Used for refresh token storage."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def _create_access_token(user: User) -> str:
    """
    Creates a signed JWT access token.
    Payload: sub, first_name, last_name, user_type, iat, exp, jti.
    """
    now = datetime.now(timezone.utc)
    expiry = now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    payload = {
        "sub": str(user.id),
        "first_name": user.first_name,
        "last_name": user.last_name,
        "user_type": UserType(user.user_type).value,
        "iat": now,
        "exp": expiry,
        # Guarantees each issued token is unique even if generated in the same second.
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _create_refresh_token(user_id: int, session: Session) -> str:
    """
    Creates a new refresh token, stores its SHA-256 hash in the DB,
    and returns the raw token to be sent to the client once.
    """
    raw_token = secrets.token_hex(32)
    token_hash = _hash_token(raw_token)
    expires_at = datetime.now(timezone.utc) + current_app.config["JWT_REFRESH_TOKEN_EXPIRES"]

    refresh_token = RefreshToken(
        user_id=user_id,
        token_hash=token_hash,
        expires_at=expires_at,
    )
    session.add(refresh_token)
    # flush so the row exists before we return; commit is the route's job
    session.flush()

    return raw_token


def _build_token_pair(user: User, session: Session) -> dict:
    """Returns a dict with both access_token and refresh_token for a user."""
    return {
        "access_token": _create_access_token(user),
        "refresh_token": _create_refresh_token(user.id, session),
    }


def build_user_dict(user: User) -> dict:
    """Serialises a User to a plain dict. The password hash never leaves here."""
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "photo_url": user.photo_url,
        "city": user.city,
        "about_user": user.about_user,
        "user_type": UserType(user.user_type).value,
        "created_at": isoformat_utc(user.created_at),
    }


def _create_user(data: dict, user_type: UserType, session: Session) -> User:
    existing_email = session.execute(
        select(User).where(User.email == data["email"])
    ).scalar_one_or_none()
    if existing_email is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            f"The email address '{data['email']}' is already registered.",
            409,
            field="email",
        )

    user = User(
        email=data["email"],
        password_hash=_hash_password(data["password"]),
        first_name=data["first_name"].strip(),
        last_name=data["last_name"].strip(),
        photo_url=data.get("photo_url"),
        city=data.get("city"),
        about_user=data.get("about_user"),
        user_type=user_type,
    )
    session.add(user)
    session.flush()  # populate user.id before creating refresh token
    return user


# ── Public service functions ───────────────────────────────────────────────

def register_user(data: dict, session: Session) -> dict:
    """
    Creates a new USER account and issues an access + refresh token pair.

    Raises:
      AppError(DUPLICATE_EMAIL, 409) — email already registered

    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    user = _create_user(data, UserType.USER, session)
    tokens = _build_token_pair(user, session)

    return {
        "user": build_user_dict(user),
        **tokens,
    }


def create_admin(data: dict, session: Session) -> User:
    """Creates an ADMIN account. Only reachable from the `flask create-admin` command."""
    user = _create_user(data, UserType.ADMIN, session)
    logger.info("Created administrator account %s (id=%s)", user.email, user.id)
    return user


def login_user(email: str, password: str, session: Session) -> dict:
    """
    Validates credentials and issues a new access + refresh token pair.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — email not found or password wrong.
      Uses the same error for both to avoid account enumeration.
    """
    user = session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()

    if user is None or not bcrypt.checkpw(
            password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The email or password is incorrect.",
            401,
        )

    tokens = _build_token_pair(user, session)

    return {
        "user": build_user_dict(user),
        **tokens,
    }


def refresh_access_token(raw_refresh_token: str, session: Session) -> dict:
    """
    Validates a refresh token and issues a new access token.

    The refresh token itself is not rotated on use.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) — not found, revoked, or expired.
    """
    token_hash = _hash_token(raw_refresh_token)
    now = datetime.now(timezone.utc)

    record = session.execute(
        select(RefreshToken).where(
            RefreshToken.token_hash == token_hash,
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > now,
        )
    ).scalar_one_or_none()

    if record is None:
        raise AppError(
            ErrorCode.REFRESH_TOKEN_INVALID,
            "The refresh token is invalid, expired, or has been revoked.",
            401,
        )

    return {
        "access_token": _create_access_token(record.user),
    }


def logout_user(raw_refresh_token: str, session: Session) -> None:
    """
    Revokes a refresh token.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) — token not found or already revoked.
    """
    token_hash = _hash_token(raw_refresh_token)

    record = session.execute(
        select(RefreshToken).where(RefreshToken.token_hash == token_hash)
    ).scalar_one_or_none()

    if record is None or record.revoked:
        raise AppError(
            ErrorCode.REFRESH_TOKEN_INVALID,
            "The refresh token is invalid or has already been revoked.",
            401,
        )

    record.revoked = True
    session.flush()


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the profile of the currently authenticated user.

    Raises:
      AppError(USER_NOT_FOUND, 404) — user_id from JWT no longer exists in DB.
    """
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
        )
    return build_user_dict(user)

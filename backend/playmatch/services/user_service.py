"""
services/user_service.py — Profile reads and sparse profile updates.

Profile edits only touch the users row. Snapshots already copied into game
cards, matched players and chats keep the values they had when taken.

Layer rules:
  - No Flask imports.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.orm import Session

from backend.playmatch.errors import AppError, ErrorCode
from backend.playmatch.models.user import User
from backend.playmatch.timeutils import utcnow
from backend.playmatch.services.auth_service import build_user_dict

_PROFILE_FIELDS = ("first_name", "last_name", "photo_url", "city", "about_user")


def get_user_or_404(user_id: int, session: Session) -> User:
    """Returns the User or raises USER_NOT_FOUND (404)."""
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} does not exist.",
            404,
        )
    return user


def get_profile(user_id: int, session: Session) -> dict:
    return build_user_dict(get_user_or_404(user_id, session))


def update_profile(user_id: int, data: dict, session: Session) -> dict:
    """
    Applies only the profile fields present in `data` (already stripped of
    empty values by PatchProfileSchema). updated_at is always refreshed.
    """
    get_user_or_404(user_id, session)

    values = {key: data[key] for key in _PROFILE_FIELDS if key in data}
    values["updated_at"] = utcnow()

    session.execute(
        update(User)
        .where(User.id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    session.flush()

    user = session.get(User, user_id, populate_existing=True)
    return build_user_dict(user)

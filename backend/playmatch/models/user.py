"""
models/user.py — User table definition.

No business logic. No imports from services or routes.

Profile columns (first_name, last_name, photo_url, city) are the source the
host/member snapshots are copied FROM. Editing them never rewrites the
snapshots already stored on game cards or chats.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.playmatch.extensions import db
from backend.playmatch.timeutils import utcnow


class UserType(str, enum.Enum):
    USER  = "USER"
    ADMIN = "ADMIN"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values, not names."""
    return [member.value for member in enum_cls]


class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(first_name)) > 0",
            name="ck_users_first_name_nonempty",
        ),
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name:  Mapped[str] = mapped_column(String(100), nullable=False)

    photo_url:  Mapped[str | None] = mapped_column(String(500), nullable=True)
    city:       Mapped[str | None] = mapped_column(String(100), nullable=True)
    about_user: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Stored as VARCHAR so the same model works on PostgreSQL and SQLite.
    user_type: Mapped[UserType] = mapped_column(
        Enum(
            UserType,
            name="user_type_enum",
            native_enum=False,
            length=10,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=UserType.USER,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    refresh_tokens: Mapped[list["RefreshToken"]] = relationship(  # noqa: F821
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email!r}>"

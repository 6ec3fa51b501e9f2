"""
models/snapshot.py — PlayerSnapshot value type.

A snapshot is a copy of a user's public profile taken at one instant (host
at card creation, player at join, member at chat creation, sender at send).
It is stored as plain columns on the owning row, never as a reference back
to the users table, so later profile edits leave history untouched.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class PlayerSnapshot:
    user_id: int
    first_name: str
    last_name: str
    photo_url: str | None = None
    city: str | None = None

    @classmethod
    def from_user(cls, user) -> "PlayerSnapshot":
        return cls(
            user_id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            photo_url=user.photo_url,
            city=user.city,
        )

    def to_dict(self) -> dict:
        return asdict(self)

"""
timeutils.py — UTC helpers shared by models, services and serializers.

All timestamps are written as UTC. SQLite (test suite) hands DateTime
columns back without tzinfo, PostgreSQL hands them back aware; isoformat_utc
renders both the same way.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalises an aware datetime to UTC; a naive one is taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat()

"""
services/venue_service.py — Admin-curated venue listings.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backend.playmatch.errors import AppError, ErrorCode
from backend.playmatch.models.venue import Venue
from backend.playmatch.timeutils import isoformat_utc, utcnow

_VENUE_FIELDS = (
    "title",
    "rating",
    "address",
    "opening_time",
    "closing_time",
    "phone_number",
    "description",
    "photos",
    "latitude",
    "longitude",
)


def _get_venue_or_404(venue_id: int, session: Session) -> Venue:
    """Returns the Venue or raises VENUE_NOT_FOUND (404)."""
    venue = session.get(Venue, venue_id)
    if venue is None:
        raise AppError(
            ErrorCode.VENUE_NOT_FOUND,
            f"Venue {venue_id} does not exist.",
            404,
        )
    return venue


def build_venue_dict(venue: Venue) -> dict:
    return {
        "id": venue.id,
        "title": venue.title,
        "rating": venue.rating,
        "address": venue.address,
        "opening_time": venue.opening_time.strftime("%H:%M"),
        "closing_time": venue.closing_time.strftime("%H:%M"),
        "phone_number": venue.phone_number,
        "description": venue.description,
        "photos": list(venue.photos or []),
        "latitude": venue.latitude,
        "longitude": venue.longitude,
        "created_at": isoformat_utc(venue.created_at),
        "updated_at": isoformat_utc(venue.updated_at),
    }


def create_venue(data: dict, session: Session) -> Venue:
    venue = Venue(**{key: data[key] for key in _VENUE_FIELDS if key in data})
    venue.title = venue.title.strip()
    session.add(venue)
    session.flush()
    return venue


def update_venue(venue_id: int, data: dict, session: Session) -> Venue:
    """Overwrites only the keys present in `data`; updated_at is always refreshed."""
    venue = _get_venue_or_404(venue_id, session)

    values = {key: data[key] for key in _VENUE_FIELDS if key in data}
    if "title" in values:
        values["title"] = values["title"].strip()
    values["updated_at"] = utcnow()

    session.execute(
        update(Venue)
        .where(Venue.id == venue_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    session.flush()
    session.refresh(venue)
    return venue


def get_venue(venue_id: int, session: Session) -> Venue:
    return _get_venue_or_404(venue_id, session)


def list_venues(session: Session) -> list[Venue]:
    """All venues, alphabetically by title."""
    return list(
        session.execute(select(Venue).order_by(Venue.title, Venue.id)).scalars().all()
    )

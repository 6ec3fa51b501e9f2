"""
services/matchmaking_service.py — Game card (posting) lifecycle and joins.

Invariants enforced here:
  - A user appears in a card's matched players at most once.
  - The host never takes a matched-player seat.
  - Seats taken (host + matched players) never exceed max_players.
  - Automatic status changes only go active -> inactive.

Concurrency:
  No read-modify-write on membership or status. A join claims its seat with
  one conditional UPDATE:

      UPDATE game_cards
         SET current_players = current_players + 1, updated_at = :now
       WHERE id = :id
         AND status = 'active'
         AND current_players < max_players
         AND host_user_id <> :uid
         AND NOT EXISTS (SELECT 1 FROM matched_players
                          WHERE game_card_id = :id AND user_id = :uid)

  Any number of concurrent joins that all saw "room left" can only push
  current_players up to max_players; the losers affect zero rows and are
  told why from a fresh read. UNIQUE(game_card_id, user_id) on
  matched_players backs up the NOT EXISTS guard.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here. The one
    exception is the IntegrityError path of a join, which rolls back.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.playmatch.errors import AppError, ErrorCode
from backend.playmatch.models.chat import Chat
from backend.playmatch.models.game_card import GameCard, GameCardStatus, MatchedPlayer
from backend.playmatch.models.snapshot import PlayerSnapshot
from backend.playmatch.services import chat_service
from backend.playmatch.services.user_service import get_user_or_404
from backend.playmatch.timeutils import as_utc, isoformat_utc, utcnow

logger = logging.getLogger(__name__)

_PATCHABLE_FIELDS = (
    "title",
    "description",
    "city",
    "category",
    "cover_url",
    "max_players",
    "min_players",
    "scheduled_time",
)

_TRIMMED_FIELDS = ("title", "description", "city")


# ── Private helpers ────────────────────────────────────────────────────────

def _get_game_card_or_404(game_card_id: int, session: Session) -> GameCard:
    """Returns the GameCard or raises POSTING_NOT_FOUND (404)."""
    card = session.get(GameCard, game_card_id)
    if card is None:
        raise AppError(
            ErrorCode.POSTING_NOT_FOUND,
            f"Posting {game_card_id} does not exist.",
            404,
        )
    return card


def _is_matched(game_card_id: int, user_id: int, session: Session) -> bool:
    row_id = session.execute(
        select(MatchedPlayer.id).where(
            MatchedPlayer.game_card_id == game_card_id,
            MatchedPlayer.user_id == user_id,
        )
    ).scalar_one_or_none()
    return row_id is not None


def _check_can_join(card, user_id: int, session: Session) -> None:
    """
    Raises the reason `user_id` may not join `card`, as seen by this read.

    Order: host, already a member, closed, full.
    """
    if card.host_user_id == user_id:
        raise AppError(
            ErrorCode.HOST_CANNOT_JOIN,
            "The host already holds a seat on their own posting.",
            400,
        )

    if _is_matched(card.id, user_id, session):
        raise AppError(
            ErrorCode.ALREADY_MEMBER,
            f"You have already joined posting {card.id}.",
            400,
        )

    if GameCardStatus(card.status) != GameCardStatus.ACTIVE:
        raise AppError(
            ErrorCode.NOT_ACCEPTING_MEMBERS,
            f"Posting {card.id} is not accepting players "
            f"(status: {GameCardStatus(card.status).value}).",
            400,
        )

    if card.current_players >= card.max_players:
        raise AppError(
            ErrorCode.NOT_ACCEPTING_MEMBERS,
            f"Posting {card.id} is full.",
            400,
        )


def _claim_seat(game_card_id: int, user_id: int, session: Session) -> bool:
    """Runs the conditional seat-claiming UPDATE. True if a seat was taken."""
    already_matched = (
        select(MatchedPlayer.id)
        .where(
            MatchedPlayer.game_card_id == game_card_id,
            MatchedPlayer.user_id == user_id,
        )
        .exists()
    )

    result = session.execute(
        update(GameCard)
        .where(
            GameCard.id == game_card_id,
            GameCard.status == GameCardStatus.ACTIVE,
            GameCard.current_players < GameCard.max_players,
            GameCard.host_user_id != user_id,
            ~already_matched,
        )
        .values(
            current_players=GameCard.current_players + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _raise_join_rejection(game_card_id: int, user_id: int, session: Session) -> None:
    """The seat UPDATE matched nothing: classify the loss from a fresh read."""
    card = session.get(GameCard, game_card_id, populate_existing=True)
    if card is None:
        raise AppError(
            ErrorCode.POSTING_NOT_FOUND,
            f"Posting {game_card_id} does not exist.",
            404,
        )

    _check_can_join(card, user_id, session)

    # The fresh read says there is room; another join took it in between.
    raise AppError(
        ErrorCode.NOT_ACCEPTING_MEMBERS,
        f"Posting {game_card_id} is full.",
        400,
    )


def _reconcile_status(card: GameCard, session: Session) -> Chat | None:
    """
    Closes a card whose seats are all taken and materialises its chat.

    The close is conditional on status = 'active', so a card the sweeper or
    an administrator already moved is left as it is.
    """
    if card.current_players < card.max_players:
        return None

    result = session.execute(
        update(GameCard)
        .where(
            GameCard.id == card.id,
            GameCard.status == GameCardStatus.ACTIVE,
            GameCard.current_players >= GameCard.max_players,
        )
        .values(status=GameCardStatus.INACTIVE, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.info(
            "Game card %s is full (%s/%s); closed",
            card.id, card.current_players, card.max_players,
        )

    session.refresh(card)
    return chat_service.materialize_if_full(card, session)


def _paginate(stmt, page: int, limit: int, session: Session) -> dict:
    total = session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()

    cards = session.execute(
        stmt.limit(limit).offset((page - 1) * limit)
    ).scalars().all()

    return {
        "items": [build_game_card_dict(c) for c in cards],
        "meta": {
            "current": page,
            "total": total,
            "page_size": limit,
        },
    }


def build_game_card_dict(card: GameCard) -> dict:
    """Serialises a GameCard with its host and matched player snapshots."""
    return {
        "id": card.id,
        "host_user": card.host.to_dict(),
        "title": card.title,
        "description": card.description,
        "city": card.city,
        "category": card.category,
        "cover_url": card.cover_url,
        "max_players": card.max_players,
        "min_players": card.min_players,
        "current_players": card.current_players,
        "matched_players": [
            {**p.snapshot.to_dict(), "joined_at": isoformat_utc(p.joined_at)}
            for p in card.matched_players
        ],
        "scheduled_time": isoformat_utc(card.scheduled_time),
        "status": GameCardStatus(card.status).value,
        "created_at": isoformat_utc(card.created_at),
        "updated_at": isoformat_utc(card.updated_at),
    }


# ── Public service functions ───────────────────────────────────────────────

def create_game_card(host_id: int, data: dict, session: Session) -> GameCard:
    """
    Creates an active game card with the host's current profile as snapshot.
    With max_players=1 the card is closed at once and gets a one-member chat.

    Raises:
      AppError(USER_NOT_FOUND, 404) — host account no longer exists
    """
    host = PlayerSnapshot.from_user(get_user_or_404(host_id, session))
    now = utcnow()

    card = GameCard(
        host_user_id=host.user_id,
        host_first_name=host.first_name,
        host_last_name=host.last_name,
        host_photo_url=host.photo_url,
        host_city=host.city,
        title=data["title"].strip(),
        description=data["description"].strip(),
        city=data["city"].strip(),
        category=data.get("category"),
        cover_url=data.get("cover_url"),
        max_players=data["max_players"],
        min_players=data.get("min_players", 1),
        current_players=1,
        scheduled_time=as_utc(data["scheduled_time"]),
        status=GameCardStatus.ACTIVE,
        created_at=now,
        updated_at=now,
    )
    session.add(card)
    session.flush()

    logger.info("User %s created game card %s", host_id, card.id)

    # A single-seat card is full the moment its host creates it.
    _reconcile_status(card, session)
    return card


def join_game_card(user_id: int, game_card_id: int, session: Session) -> GameCard:
    """
    Adds the caller to a game card's matched players.

    The pre-check against the loaded card gives a precise error for the
    common case; the conditional UPDATE is what actually decides.

    Raises:
      AppError(POSTING_NOT_FOUND, 404)
      AppError(HOST_CANNOT_JOIN, 400)
      AppError(ALREADY_MEMBER, 400)
      AppError(NOT_ACCEPTING_MEMBERS, 400) — closed, or no seat left
      AppError(USER_NOT_FOUND, 404) — joining account no longer exists

    Returns:
        The refreshed GameCard, closed and with a chat if this join filled it.
    """
    card = _get_game_card_or_404(game_card_id, session)
    _check_can_join(card, user_id, session)

    snapshot = PlayerSnapshot.from_user(get_user_or_404(user_id, session))

    if not _claim_seat(game_card_id, user_id, session):
        _raise_join_rejection(game_card_id, user_id, session)

    session.add(
        MatchedPlayer(
            game_card_id=game_card_id,
            user_id=snapshot.user_id,
            first_name=snapshot.first_name,
            last_name=snapshot.last_name,
            photo_url=snapshot.photo_url,
            city=snapshot.city,
        )
    )
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise AppError(
            ErrorCode.ALREADY_MEMBER,
            f"You have already joined posting {game_card_id}.",
            400,
        )

    card = session.get(GameCard, game_card_id)
    session.refresh(card)
    logger.info(
        "User %s joined game card %s (%s/%s)",
        user_id, game_card_id, card.current_players, card.max_players,
    )

    _reconcile_status(card, session)
    return card


def update_game_card(
        host_id: int,
        game_card_id: int,
        data: dict,
        session: Session,
) -> GameCard:
    """
    Sparse host-only update. `data` holds only keys to overwrite
    (PatchGameCardSchema has already dropped None, "" and 0).

    Raises:
      AppError(POSTING_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403) — caller is not the host
      AppError(INVALID_FIELD, 400) — resulting min_players > max_players
      AppError(CAPACITY_BELOW_PLAYERS, 400) — max_players below seats taken
    """
    card = _get_game_card_or_404(game_card_id, session)

    if card.host_user_id != host_id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only the host may edit this posting.",
            403,
        )

    values = {key: data[key] for key in _PATCHABLE_FIELDS if key in data}
    for key in _TRIMMED_FIELDS:
        if key in values:
            values[key] = values[key].strip()
    if "scheduled_time" in values:
        values["scheduled_time"] = as_utc(values["scheduled_time"])

    new_min = values.get("min_players", card.min_players)
    new_max = values.get("max_players", card.max_players)
    if new_min > new_max:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            "min_players must not exceed max_players.",
            400,
            field="min_players",
        )

    was_active = GameCardStatus(card.status) == GameCardStatus.ACTIVE

    stmt = update(GameCard).where(
        GameCard.id == game_card_id,
        GameCard.host_user_id == host_id,
    )
    if "max_players" in values:
        stmt = stmt.where(GameCard.current_players <= values["max_players"])

    result = session.execute(
        stmt.values(**values, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        if "max_players" in values:
            raise AppError(
                ErrorCode.CAPACITY_BELOW_PLAYERS,
                f"max_players cannot be lower than the {card.current_players} "
                f"seats already taken.",
                400,
                field="max_players",
            )
        raise AppError(
            ErrorCode.POSTING_NOT_FOUND,
            f"Posting {game_card_id} does not exist.",
            404,
        )

    session.flush()
    session.refresh(card)

    if was_active and "max_players" in values:
        _reconcile_status(card, session)

    return card


def admin_set_status(
        game_card_id: int,
        status: GameCardStatus,
        session: Session,
) -> GameCard:
    """
    Sets any status. The ADMIN role is checked by require_admin at the route.

    Raises:
      AppError(POSTING_NOT_FOUND, 404)
    """
    card = _get_game_card_or_404(game_card_id, session)

    session.execute(
        update(GameCard)
        .where(GameCard.id == game_card_id)
        .values(status=status, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    session.flush()
    session.refresh(card)

    logger.info("Game card %s status set to %s by administrator", game_card_id, status.value)
    return card


def get_game_card(game_card_id: int, session: Session) -> GameCard:
    return _get_game_card_or_404(game_card_id, session)


def list_active_game_cards(
        caller_id: int,
        filters: dict,
        session: Session,
) -> dict:
    """
    Active cards other users host, for the feed.

    filters (from ActiveGameCardsQuerySchema): city, category,
    scheduled_from, scheduled_to, sort, page, limit. City and category match
    case-insensitively.
    """
    stmt = select(GameCard).where(
        GameCard.status == GameCardStatus.ACTIVE,
        GameCard.host_user_id != caller_id,
    )

    if filters.get("city"):
        stmt = stmt.where(func.lower(GameCard.city) == filters["city"].strip().lower())
    if filters.get("category"):
        stmt = stmt.where(func.lower(GameCard.category) == filters["category"].strip().lower())

    scheduled_from: datetime | None = filters.get("scheduled_from")
    scheduled_to: datetime | None = filters.get("scheduled_to")
    if scheduled_from is not None:
        stmt = stmt.where(GameCard.scheduled_time >= as_utc(scheduled_from))
    if scheduled_to is not None:
        stmt = stmt.where(GameCard.scheduled_time <= as_utc(scheduled_to))

    if filters.get("sort", "asc") == "desc":
        stmt = stmt.order_by(GameCard.created_at.desc(), GameCard.id.desc())
    else:
        stmt = stmt.order_by(GameCard.created_at.asc(), GameCard.id.asc())

    return _paginate(stmt, filters.get("page", 1), filters.get("limit", 10), session)


def list_user_game_cards(
        user_id: int,
        status: GameCardStatus | None,
        page: int,
        limit: int,
        session: Session,
) -> dict:
    """Cards hosted by `user_id`, newest first, optionally filtered by status."""
    get_user_or_404(user_id, session)

    stmt = select(GameCard).where(GameCard.host_user_id == user_id)
    if status is not None:
        stmt = stmt.where(GameCard.status == status)
    stmt = stmt.order_by(GameCard.created_at.desc(), GameCard.id.desc())

    return _paginate(stmt, page, limit, session)


def list_all_game_cards(page: int, limit: int, session: Session) -> dict:
    """Every card regardless of status, newest first. Admin only."""
    stmt = select(GameCard).order_by(GameCard.created_at.desc(), GameCard.id.desc())
    return _paginate(stmt, page, limit, session)


def get_filter_values(session: Session) -> dict:
    """Distinct cities and categories across all cards, for filter pickers."""
    cities = session.execute(
        select(GameCard.city).distinct().order_by(GameCard.city)
    ).scalars().all()

    categories = session.execute(
        select(GameCard.category)
        .where(GameCard.category.is_not(None))
        .distinct()
        .order_by(GameCard.category)
    ).scalars().all()

    return {
        "cities": list(cities),
        "categories": list(categories),
    }

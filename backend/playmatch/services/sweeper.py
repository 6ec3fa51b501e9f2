"""
services/sweeper.py — Closes active game cards whose scheduled time has passed.

Run periodically by scheduler.SweepScheduler and on demand by `flask sweep`.

Each card is closed by its own conditional UPDATE (WHERE status = 'active')
and committed on its own, so one failing row never holds back the rest and
running the sweep twice transitions each card at most once. A card that
fails is logged and picked up again on the next tick.

Unlike the request-path services this module commits: it owns its unit of
work, there is no route around it.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.playmatch.models.game_card import GameCard, GameCardStatus
from backend.playmatch.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)


def _find_expired_ids(session: Session, now: datetime) -> list[int]:
    return list(
        session.execute(
            select(GameCard.id)
            .where(
                GameCard.status == GameCardStatus.ACTIVE,
                GameCard.scheduled_time < now,
            )
            .order_by(GameCard.scheduled_time, GameCard.id)
        ).scalars().all()
    )


def _expire_one(game_card_id: int, session: Session, now: datetime) -> bool:
    result = session.execute(
        update(GameCard)
        .where(
            GameCard.id == game_card_id,
            GameCard.status == GameCardStatus.ACTIVE,
        )
        .values(status=GameCardStatus.INACTIVE, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def sweep_expired_game_cards(session: Session, now: datetime | None = None) -> int:
    """
    Moves every active card with scheduled_time < now to inactive.

    Returns the number of cards this call actually transitioned.
    """
    now = as_utc(now) if now is not None else utcnow()
    expired_ids = _find_expired_ids(session, now)
    if not expired_ids:
        logger.debug("Sweep found no expired game cards")
        return 0

    transitioned = 0
    for game_card_id in expired_ids:
        try:
            if _expire_one(game_card_id, session, now):
                transitioned += 1
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Failed to expire game card %s; will retry next sweep", game_card_id)

    logger.info(
        "Sweep closed %d of %d expired game cards",
        transitioned, len(expired_ids),
    )
    return transitioned

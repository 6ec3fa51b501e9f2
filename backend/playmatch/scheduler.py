"""
scheduler.py — APScheduler wrapper for the expiry sweeper.

The app factory owns the single SweepScheduler instance: it is started when
SWEEPER_ENABLED is true and shut down at interpreter exit. Nothing starts at
import time.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from flask import Flask

SWEEP_JOB_ID = "sweep-expired-game-cards"

logger = logging.getLogger(__name__)


def run_sweep(app: Flask) -> int:
    """One sweeper tick inside an app context, with its own scoped session."""
    from backend.playmatch.extensions import db
    from backend.playmatch.services.sweeper import sweep_expired_game_cards

    with app.app_context():
        try:
            return sweep_expired_game_cards(db.session)
        finally:
            db.session.remove()


class SweepScheduler:
    """Minimal wrapper around BackgroundScheduler for the sweeper job."""

    def __init__(self, app: Flask) -> None:
        self._app = app
        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        interval = self._app.config.get("SWEEPER_INTERVAL_SECONDS", 60)
        self._scheduler.add_job(
            run_sweep,
            trigger=IntervalTrigger(seconds=interval),
            args=[self._app],
            id=SWEEP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        self._started = True
        logger.info("Sweeper scheduled every %s seconds", interval)

    def shutdown(self) -> None:
        if self._started:
            self._scheduler.shutdown(wait=False)
            self._started = False


__all__ = ["SweepScheduler", "run_sweep", "SWEEP_JOB_ID"]

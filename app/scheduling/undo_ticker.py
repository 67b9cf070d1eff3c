"""Background countdown for the undo window.

Purely for display: it reports the seconds left once per interval and lets
the manager drop an expired batch. Expiry itself does not depend on it.
"""

from __future__ import annotations

from collections.abc import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from app.scheduling.undo import UndoManager

UNDO_TICK_JOB_ID = "undo_countdown"


class UndoTicker:
    def __init__(
        self,
        manager: UndoManager,
        on_tick: Callable[[int], None] | None = None,
        *,
        interval_seconds: int = 1,
        scheduler: BackgroundScheduler | None = None,
    ):
        self.manager = manager
        self.on_tick = on_tick
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or BackgroundScheduler()

    def run_once(self) -> int:
        remaining = self.manager.tick()
        if self.on_tick is not None:
            self.on_tick(remaining)
        return remaining

    def start(self) -> None:
        self.scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=UNDO_TICK_JOB_ID,
            name="Undo window countdown",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("[UNDO] Countdown started", interval_seconds=self.interval_seconds)

    def stop(self) -> None:
        self.scheduler.shutdown(wait=False)
        logger.info("[UNDO] Countdown stopped")

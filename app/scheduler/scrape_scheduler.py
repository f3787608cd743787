"""
app/scheduler/scrape_scheduler.py

APScheduler-based periodic trigger for menu scraping.

Lifecycle
----------
Build one ``ScrapeScheduler`` per process (``ScrapeScheduler.from_settings``),
call ``start()`` on app boot when ``SCRAPE_SCHEDULER_ENABLED`` is true and
``shutdown()`` on app exit. The FastAPI ``lifespan`` in main.py does both.

Semantics
----------
- ``start()`` while already running is a no-op that logs a warning.
- ``shutdown()`` removes the timer and waits for an in-flight cycle to finish
  instead of aborting it. Calling it while stopped is a no-op.
- Cycles never overlap: a tick that fires while the previous cycle is still
  running is coalesced into it.
- Each cycle runs ``scrape_all()`` on a fresh event loop in the scheduler's
  worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger

from app.config import SchedulerSettings
from app.domain.menu_scraping import ScrapeOutcome
from app.scraping.logging_utils import log_event
from app.scraping.orchestrator import MenuScrapeOrchestrator

logger = logging.getLogger(__name__)

JOB_ID = "menu_scrape_cycle"


class ScrapeScheduler:
    """
    Recurring trigger that runs one full scrape cycle per tick.
    """

    def __init__(
        self,
        *,
        orchestrator: MenuScrapeOrchestrator,
        trigger: BaseTrigger,
        timezone: str = "UTC",
        misfire_grace_time: int = 900,
    ) -> None:
        self._orchestrator = orchestrator
        self._trigger = trigger
        self._timezone = timezone
        self._misfire_grace_time = misfire_grace_time
        self._scheduler: BackgroundScheduler | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        *,
        orchestrator: MenuScrapeOrchestrator,
        settings: SchedulerSettings,
    ) -> "ScrapeScheduler":
        """
        Build a scheduler firing on the configured crontab expression.
        """

        trigger = CronTrigger.from_crontab(settings.cron, timezone=settings.timezone)
        return cls(orchestrator=orchestrator, trigger=trigger, timezone=settings.timezone)

    def start(self) -> None:
        with self._lock:
            if self._scheduler is not None:
                log_event(logger, logging.WARNING, "scheduler_already_running", job_id=JOB_ID)
                return

            scheduler = BackgroundScheduler(timezone=self._timezone)
            scheduler.add_job(
                self.run_cycle,
                trigger=self._trigger,
                id=JOB_ID,
                name="Menu scrape cycle",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=self._misfire_grace_time,
            )
            scheduler.start()
            self._scheduler = scheduler
            job = scheduler.get_job(JOB_ID)

        log_event(
            logger,
            logging.INFO,
            "scheduler_started",
            job_id=JOB_ID,
            trigger=str(self._trigger),
            next_run_time=job.next_run_time if job is not None else None,
        )

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            scheduler = self._scheduler
            if scheduler is None:
                return
            # Cleared first so is_running() reports stopped while the last cycle drains.
            self._scheduler = None
            scheduler.shutdown(wait=wait)

        log_event(logger, logging.INFO, "scheduler_stopped", job_id=JOB_ID, waited=wait)

    def is_running(self) -> bool:
        return self._scheduler is not None

    def run_cycle(self) -> list[ScrapeOutcome]:
        """
        Run one scrape cycle to completion. Invoked by the scheduler on each tick.
        """

        log_event(logger, logging.INFO, "scheduled_scrape_triggered", job_id=JOB_ID)
        return asyncio.run(self._orchestrator.scrape_all())

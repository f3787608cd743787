"""
tests/test_scrape_scheduler.py

Lifecycle tests for ScrapeScheduler.

A stub orchestrator counts cycles; interval triggers keep the tests fast.
"""

from __future__ import annotations

import threading
import time

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app.config import SchedulerSettings
from app.domain.menu_scraping import ScrapeOutcome, ScrapeStatus
from app.scheduler.scrape_scheduler import ScrapeScheduler


class CountingOrchestrator:
    def __init__(self, *, duration: float = 0.0) -> None:
        self.duration = duration
        self.cycles = 0
        self.finished = 0
        self.called = threading.Event()
        self._lock = threading.Lock()

    async def scrape_all(self) -> list[ScrapeOutcome]:
        with self._lock:
            self.cycles += 1
        self.called.set()
        if self.duration:
            time.sleep(self.duration)
        with self._lock:
            self.finished += 1
        return [ScrapeOutcome(location_id="L1", restaurant_id="R1", status=ScrapeStatus.SKIPPED)]


def _scheduler(orchestrator: CountingOrchestrator, seconds: float = 3600) -> ScrapeScheduler:
    return ScrapeScheduler(orchestrator=orchestrator, trigger=IntervalTrigger(seconds=seconds))


@pytest.fixture()
def orchestrator() -> CountingOrchestrator:
    return CountingOrchestrator()


class TestLifecycle:
    def test_start_and_shutdown(self, orchestrator) -> None:
        scheduler = _scheduler(orchestrator)
        assert scheduler.is_running() is False

        scheduler.start()
        try:
            assert scheduler.is_running() is True
        finally:
            scheduler.shutdown()

        assert scheduler.is_running() is False

    def test_second_start_is_a_no_op(self, orchestrator) -> None:
        scheduler = _scheduler(orchestrator)
        scheduler.start()
        try:
            running = scheduler._scheduler
            scheduler.start()
            assert scheduler._scheduler is running
        finally:
            scheduler.shutdown()

    def test_shutdown_when_stopped_is_a_no_op(self, orchestrator) -> None:
        scheduler = _scheduler(orchestrator)

        scheduler.shutdown()

        assert scheduler.is_running() is False

    def test_can_restart_after_shutdown(self, orchestrator) -> None:
        scheduler = _scheduler(orchestrator)
        scheduler.start()
        scheduler.shutdown()

        scheduler.start()
        try:
            assert scheduler.is_running() is True
        finally:
            scheduler.shutdown()


class TestCycles:
    def test_run_cycle_returns_orchestrator_outcomes(self, orchestrator) -> None:
        outcomes = _scheduler(orchestrator).run_cycle()

        assert [outcome.status for outcome in outcomes] == [ScrapeStatus.SKIPPED]
        assert orchestrator.cycles == 1

    def test_ticks_trigger_cycles_and_stop_after_shutdown(self, orchestrator) -> None:
        scheduler = _scheduler(orchestrator, seconds=0.1)
        scheduler.start()
        try:
            assert orchestrator.called.wait(timeout=5)
        finally:
            scheduler.shutdown(wait=True)

        cycles_at_shutdown = orchestrator.cycles
        time.sleep(0.4)

        assert cycles_at_shutdown >= 1
        assert orchestrator.cycles == cycles_at_shutdown

    def test_shutdown_waits_for_in_flight_cycle(self) -> None:
        orchestrator = CountingOrchestrator(duration=0.3)
        scheduler = _scheduler(orchestrator, seconds=0.05)
        scheduler.start()
        assert orchestrator.called.wait(timeout=5)

        scheduler.shutdown(wait=True)

        assert orchestrator.finished == orchestrator.cycles


class TestFromSettings:
    def test_builds_cron_trigger(self, orchestrator) -> None:
        scheduler = ScrapeScheduler.from_settings(
            orchestrator=orchestrator,
            settings=SchedulerSettings(enabled=True, cron="*/5 8-14 * * 1-5", timezone="Europe/Helsinki"),
        )

        assert isinstance(scheduler._trigger, CronTrigger)
        assert scheduler.is_running() is False

    def test_rejects_invalid_cron(self, orchestrator) -> None:
        with pytest.raises(ValueError):
            ScrapeScheduler.from_settings(
                orchestrator=orchestrator,
                settings=SchedulerSettings(enabled=True, cron="every two hours", timezone="UTC"),
            )

"""
tests/test_menu_scrape_orchestrator.py

Unit tests for MenuScrapeOrchestrator.

All collaborators are in-memory fakes; no network, no database, no LLM.

Coverage
--------
- First run extracts and persists, repeat run with identical pages is a no-op
- A changed page triggers exactly one extraction and one store write
- URL results are combined in configured order regardless of completion order
- Per-restaurant failures (fetch, lookup, extract, persist, internal) are isolated
- Unknown location and restaurant ids have no side effects
- Fetch and extraction timeouts become failed outcomes
- Concurrency bounds on fetches and extractions, including timed-out calls
- Week buckets follow the clock's local calendar
- Week bucketing and the save-document flag
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from scrape_fakes import (
    FIXED_NOW,
    FakeDocumentSource,
    RecordingExtractionService,
    RecordingMenuStore,
    build_orchestrator,
    fixed_clock,
    location,
    restaurant,
)

from app.domain.menu_scraping import MenuScrapeResult, ScrapeStage, ScrapeStatus
from app.scraping.hashing import combine_documents, document_hash, week_bucket
from app.scraping.orchestrator import zoned_clock

URL_A = "https://menus.example.com/r1"
URL_B = "https://menus.example.com/r2/monday"
URL_C = "https://other.example.com/r2/tuesday"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def source() -> FakeDocumentSource:
    return FakeDocumentSource(
        {
            URL_A: "<p>Meatballs 11.50</p>",
            URL_B: "<p>Mon: soup</p>",
            URL_C: "<p>Tue: pasta</p>",
        }
    )


@pytest.fixture()
def extraction() -> RecordingExtractionService:
    return RecordingExtractionService()


@pytest.fixture()
def store() -> RecordingMenuStore:
    return RecordingMenuStore()


@pytest.fixture()
def locations():
    return [
        location(
            "L1",
            restaurant("R1", URL_A, hint="weekly-list"),
            restaurant("R2", URL_B, URL_C),
        )
    ]


def _statuses(outcomes) -> dict[str, str]:
    return {outcome.restaurant_id: outcome.status for outcome in outcomes}


# ---------------------------------------------------------------------------
# Change detection
# ---------------------------------------------------------------------------


class TestChangeDetection:
    def test_first_run_updates_every_restaurant(self, locations, source, extraction, store) -> None:
        orchestrator = build_orchestrator(locations, source=source, extraction=extraction, store=store)

        outcomes = asyncio.run(orchestrator.scrape_all())

        assert _statuses(outcomes) == {"R1": ScrapeStatus.UPDATED, "R2": ScrapeStatus.UPDATED}
        assert len(extraction.calls) == 2
        assert len(store.upserts) == 2

    def test_repeat_run_with_identical_pages_is_a_no_op(
        self, locations, source, extraction, store
    ) -> None:
        orchestrator = build_orchestrator(locations, source=source, extraction=extraction, store=store)
        asyncio.run(orchestrator.scrape_all())

        outcomes = asyncio.run(orchestrator.scrape_all())

        assert _statuses(outcomes) == {"R1": ScrapeStatus.SKIPPED, "R2": ScrapeStatus.SKIPPED}
        assert len(extraction.calls) == 2
        assert len(store.upserts) == 2

    def test_changed_page_reextracts_only_that_restaurant(
        self, locations, source, extraction, store
    ) -> None:
        orchestrator = build_orchestrator(locations, source=source, extraction=extraction, store=store)
        asyncio.run(orchestrator.scrape_all())
        asyncio.run(orchestrator.scrape_all())

        source.pages[URL_C] = "<p>Tue: lasagne</p>"
        outcomes = asyncio.run(orchestrator.scrape_all())

        assert _statuses(outcomes) == {"R1": ScrapeStatus.SKIPPED, "R2": ScrapeStatus.UPDATED}
        assert len(extraction.calls) == 3
        assert extraction.calls[-1] == ("<p>Mon: soup</p>\n<p>Tue: lasagne</p>", None)
        assert len(store.upserts) == 3

        stored = store.get("L1", "R2", year=2026, week=43)
        assert stored is not None
        assert stored.document_hash == document_hash("<p>Mon: soup</p>\n<p>Tue: lasagne</p>")

    def test_skipped_outcome_carries_current_hash(self, locations, source, store) -> None:
        orchestrator = build_orchestrator(locations, source=source, store=store)
        asyncio.run(orchestrator.scrape_all())

        outcome = asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert outcome is not None
        assert outcome.status == ScrapeStatus.SKIPPED
        assert outcome.document_hash == document_hash("<p>Meatballs 11.50</p>")

    def test_hint_is_forwarded_to_extraction(self, locations, source, extraction) -> None:
        orchestrator = build_orchestrator(locations, source=source, extraction=extraction)

        asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert extraction.calls == [("<p>Meatballs 11.50</p>", "weekly-list")]

    def test_result_from_previous_week_does_not_suppress_extraction(
        self, locations, source, extraction, store
    ) -> None:
        last_week_year, last_week = week_bucket(FIXED_NOW - timedelta(days=7))
        store.upsert(
            MenuScrapeResult(
                year=last_week_year,
                week=last_week,
                location_id="L1",
                restaurant_id="R1",
                document=None,
                document_hash=document_hash("<p>Meatballs 11.50</p>"),
                scrape_timestamp=FIXED_NOW - timedelta(days=7),
                extraction_result={},
            )
        )
        orchestrator = build_orchestrator(locations, source=source, extraction=extraction, store=store)

        outcome = asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert outcome.status == ScrapeStatus.UPDATED
        assert len(extraction.calls) == 1


# ---------------------------------------------------------------------------
# Document combination
# ---------------------------------------------------------------------------


class TestDocumentCombination:
    def test_documents_combined_in_configured_url_order(self, source, extraction) -> None:
        # First URL finishes last.
        source.delays[URL_B] = 0.2
        orchestrator = build_orchestrator(
            [location("L1", restaurant("R2", URL_B, URL_C))],
            source=source,
            extraction=extraction,
        )

        outcome = asyncio.run(orchestrator.scrape_restaurant("L1", "R2"))

        assert outcome.status == ScrapeStatus.UPDATED
        assert extraction.calls[0][0] == "<p>Mon: soup</p>\n<p>Tue: pasta</p>"
        assert outcome.document_hash == document_hash(
            combine_documents(["<p>Mon: soup</p>", "<p>Tue: pasta</p>"])
        )

    def test_reordered_urls_produce_a_different_hash(self, source) -> None:
        forward = build_orchestrator(
            [location("L1", restaurant("R2", URL_B, URL_C))], source=source
        )
        backward = build_orchestrator(
            [location("L1", restaurant("R2", URL_C, URL_B))], source=source
        )

        first = asyncio.run(forward.scrape_restaurant("L1", "R2"))
        second = asyncio.run(backward.scrape_restaurant("L1", "R2"))

        assert first.document_hash != second.document_hash


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


class TestFailureIsolation:
    def test_fetch_failure_fails_only_that_restaurant(
        self, locations, source, extraction, store
    ) -> None:
        source.failing.add(URL_A)
        orchestrator = build_orchestrator(locations, source=source, extraction=extraction, store=store)

        outcomes = asyncio.run(orchestrator.scrape_all())
        by_id = {outcome.restaurant_id: outcome for outcome in outcomes}

        assert by_id["R1"].status == ScrapeStatus.FAILED
        assert by_id["R1"].stage == ScrapeStage.FETCH
        assert URL_A in by_id["R1"].error
        assert by_id["R2"].status == ScrapeStatus.UPDATED
        assert [result.restaurant_id for result in store.upserts] == ["R2"]
        assert len(extraction.calls) == 1

    def test_one_failing_url_fails_the_whole_restaurant(self, locations, source, extraction) -> None:
        source.failing.add(URL_C)
        orchestrator = build_orchestrator(locations, source=source, extraction=extraction)

        outcome = asyncio.run(orchestrator.scrape_restaurant("L1", "R2"))

        assert outcome.status == ScrapeStatus.FAILED
        assert outcome.stage == ScrapeStage.FETCH
        assert extraction.calls == []

    def test_failure_in_one_location_does_not_affect_another(self, source, store) -> None:
        source.failing.add(URL_A)
        orchestrator = build_orchestrator(
            [
                location("L1", restaurant("R1", URL_A)),
                location("L2", restaurant("R9", URL_B)),
            ],
            source=source,
            store=store,
        )

        outcomes = asyncio.run(orchestrator.scrape_all())

        assert {(o.location_id, o.status) for o in outcomes} == {
            ("L1", ScrapeStatus.FAILED),
            ("L2", ScrapeStatus.UPDATED),
        }

    def test_extraction_failure_persists_nothing(self, locations, source, store) -> None:
        orchestrator = build_orchestrator(
            locations,
            source=source,
            extraction=RecordingExtractionService(fail=True),
            store=store,
        )

        outcome = asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert outcome.status == ScrapeStatus.FAILED
        assert outcome.stage == ScrapeStage.EXTRACT
        assert outcome.document_hash == document_hash("<p>Meatballs 11.50</p>")
        assert store.upserts == []

    def test_failed_extraction_is_retried_on_next_run(self, locations, source, store) -> None:
        extraction = RecordingExtractionService(fail=True)
        orchestrator = build_orchestrator(locations, source=source, extraction=extraction, store=store)
        asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        extraction.fail = False
        outcome = asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert outcome.status == ScrapeStatus.UPDATED
        assert len(extraction.calls) == 2

    def test_store_read_failure_is_reported_as_lookup(self, locations, source, extraction) -> None:
        orchestrator = build_orchestrator(
            locations,
            source=source,
            extraction=extraction,
            store=RecordingMenuStore(fail_get=True),
        )

        outcomes = asyncio.run(orchestrator.scrape_all())

        assert {outcome.stage for outcome in outcomes} == {ScrapeStage.LOOKUP}
        assert source.calls == []
        assert extraction.calls == []

    def test_store_write_failure_is_reported_as_persist(self, locations, source, extraction) -> None:
        orchestrator = build_orchestrator(
            locations,
            source=source,
            extraction=extraction,
            store=RecordingMenuStore(fail_upsert=True),
        )

        outcome = asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert outcome.status == ScrapeStatus.FAILED
        assert outcome.stage == ScrapeStage.PERSIST
        assert outcome.document_hash is not None
        assert len(extraction.calls) == 1

    def test_unexpected_exception_becomes_internal_failure(self, locations, source) -> None:
        orchestrator = build_orchestrator(
            locations,
            source=source,
            store=RecordingMenuStore(broken_get=True),
        )

        outcomes = asyncio.run(orchestrator.scrape_all())

        assert len(outcomes) == 2
        assert all(outcome.stage == ScrapeStage.INTERNAL for outcome in outcomes)
        assert all("unexpected driver state" in outcome.error for outcome in outcomes)

    def test_fetch_timeout_becomes_fetch_failure(self, locations, source) -> None:
        source.delays[URL_A] = 0.5
        orchestrator = build_orchestrator(locations, source=source, fetch_timeout_seconds=0.05)

        outcome = asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert outcome.status == ScrapeStatus.FAILED
        assert outcome.stage == ScrapeStage.FETCH
        assert "Timed out" in outcome.error

    def test_extraction_timeout_becomes_extract_failure(self, locations, source, store) -> None:
        class SlowExtraction(RecordingExtractionService):
            def extract(self, document, hint=None):
                time.sleep(0.5)
                return super().extract(document, hint)

        orchestrator = build_orchestrator(
            locations,
            source=source,
            extraction=SlowExtraction(),
            store=store,
            extraction_timeout_seconds=0.05,
        )

        outcome = asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert outcome.stage == ScrapeStage.EXTRACT
        assert store.upserts == []


# ---------------------------------------------------------------------------
# Targeted runs
# ---------------------------------------------------------------------------


class TestTargetedRuns:
    def test_unknown_location_returns_empty_list(self, locations, source, extraction, store) -> None:
        orchestrator = build_orchestrator(locations, source=source, extraction=extraction, store=store)

        assert asyncio.run(orchestrator.scrape_location("nowhere")) == []
        assert source.calls == []
        assert store.upserts == []

    def test_unknown_restaurant_returns_none(self, locations, source, extraction, store) -> None:
        orchestrator = build_orchestrator(locations, source=source, extraction=extraction, store=store)

        assert asyncio.run(orchestrator.scrape_restaurant("L1", "nobody")) is None
        assert asyncio.run(orchestrator.scrape_restaurant("nowhere", "R1")) is None
        assert source.calls == []
        assert extraction.calls == []

    def test_scrape_location_covers_only_that_location(self, source) -> None:
        orchestrator = build_orchestrator(
            [
                location("L1", restaurant("R1", URL_A)),
                location("L2", restaurant("R9", URL_B)),
            ],
            source=source,
        )

        outcomes = asyncio.run(orchestrator.scrape_location("L2"))

        assert [(o.location_id, o.restaurant_id) for o in outcomes] == [("L2", "R9")]
        assert source.calls == [URL_B]

    def test_disabled_restaurants_are_not_scraped(self, source) -> None:
        orchestrator = build_orchestrator(
            [location("L1", restaurant("R1", URL_A), restaurant("R2", URL_B, enabled=False))],
            source=source,
        )

        outcomes = asyncio.run(orchestrator.scrape_all())

        assert [outcome.restaurant_id for outcome in outcomes] == ["R1"]
        assert asyncio.run(orchestrator.scrape_restaurant("L1", "R2")) is None

    def test_empty_configuration_yields_no_outcomes(self, source) -> None:
        orchestrator = build_orchestrator([], source=source)

        assert asyncio.run(orchestrator.scrape_all()) == []


# ---------------------------------------------------------------------------
# Persisted result shape
# ---------------------------------------------------------------------------


class TestPersistedResult:
    def test_result_is_stamped_with_current_week(self, locations, source, store) -> None:
        orchestrator = build_orchestrator(locations, source=source, store=store)

        asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        result = store.upserts[0]
        assert (result.year, result.week) == week_bucket(fixed_clock())
        assert result.scrape_timestamp == FIXED_NOW
        assert result.location_id == "L1"
        assert result.restaurant_id == "R1"
        assert result.extraction_result["hint"] == "weekly-list"

    def test_document_not_saved_by_default(self, locations, source, store) -> None:
        orchestrator = build_orchestrator(locations, source=source, store=store)

        asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert store.upserts[0].document is None

    def test_document_saved_when_enabled(self, locations, source, store) -> None:
        orchestrator = build_orchestrator(locations, source=source, store=store, save_document=True)

        asyncio.run(orchestrator.scrape_restaurant("L1", "R2"))

        assert store.upserts[0].document == "<p>Mon: soup</p>\n<p>Tue: pasta</p>"

    def test_update_replaces_previous_result_for_same_week(self, locations, source, store) -> None:
        orchestrator = build_orchestrator(locations, source=source, store=store)
        asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        source.pages[URL_A] = "<p>Fish 12.90</p>"
        asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        stored = store.list_for_location("L1", year=2026, week=43)
        assert len(stored) == 1
        assert stored[0].document_hash == document_hash("<p>Fish 12.90</p>")


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    def test_fetch_concurrency_is_bounded(self) -> None:
        urls = [f"https://menus.example.com/page/{index}" for index in range(6)]
        source = FakeDocumentSource(
            {url: f"<p>{url}</p>" for url in urls},
            delays={url: 0.05 for url in urls},
        )
        orchestrator = build_orchestrator(
            [
                location(
                    "L1",
                    restaurant("R1", *urls[:3]),
                    restaurant("R2", *urls[3:]),
                )
            ],
            source=source,
            max_concurrent_fetches=2,
        )

        outcomes = asyncio.run(orchestrator.scrape_all())

        assert all(outcome.status == ScrapeStatus.UPDATED for outcome in outcomes)
        assert len(source.calls) == 6
        assert source.peak_in_flight <= 2

    def test_limits_are_rebuilt_for_every_event_loop(self, locations, source) -> None:
        orchestrator = build_orchestrator(locations, source=source, max_concurrent_fetches=1)

        first = asyncio.run(orchestrator.scrape_all())
        second = asyncio.run(orchestrator.scrape_all())

        assert len(first) == len(second) == 2

    def test_timed_out_fetches_keep_their_slot_until_they_return(self) -> None:
        urls = [f"https://slow.example.com/{index}" for index in range(4)]
        source = FakeDocumentSource(
            {url: "<p>late</p>" for url in urls},
            delays={url: 0.2 for url in urls},
        )
        orchestrator = build_orchestrator(
            [location("L1", *(restaurant(f"R{index}", url) for index, url in enumerate(urls)))],
            source=source,
            max_concurrent_fetches=1,
            fetch_timeout_seconds=0.05,
        )

        outcomes = asyncio.run(orchestrator.scrape_all())

        assert {outcome.stage for outcome in outcomes} == {ScrapeStage.FETCH}
        assert source.peak_in_flight <= 1

    def test_timed_out_extractions_keep_their_slot_until_they_return(self, source) -> None:
        class SlowCountingExtraction(RecordingExtractionService):
            def __init__(self) -> None:
                super().__init__()
                self.in_flight = 0
                self.peak_in_flight = 0

            def extract(self, document, hint=None):
                with self._lock:
                    self.in_flight += 1
                    self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
                try:
                    time.sleep(0.2)
                    return super().extract(document, hint)
                finally:
                    with self._lock:
                        self.in_flight -= 1

        extraction = SlowCountingExtraction()
        orchestrator = build_orchestrator(
            [location("L1", restaurant("R1", URL_A), restaurant("R2", URL_B), restaurant("R3", URL_C))],
            source=source,
            extraction=extraction,
            max_concurrent_extractions=1,
            extraction_timeout_seconds=0.05,
        )

        outcomes = asyncio.run(orchestrator.scrape_all())

        assert {outcome.stage for outcome in outcomes} == {ScrapeStage.EXTRACT}
        assert extraction.peak_in_flight <= 1

    def test_grace_lets_a_call_finish_past_its_budget(self, locations, source) -> None:
        source.delays[URL_A] = 0.1
        orchestrator = build_orchestrator(
            locations,
            source=source,
            fetch_timeout_seconds=0.05,
            timeout_grace_seconds=1.0,
        )

        outcome = asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert outcome.status == ScrapeStatus.UPDATED


# ---------------------------------------------------------------------------
# Week bucket timezone
# ---------------------------------------------------------------------------


class TestWeekTimezone:
    def test_monday_morning_in_local_zone_lands_in_the_new_week(self, locations, source, store) -> None:
        # Sunday 22:30 UTC is Monday 01:30 in Helsinki.
        sunday_night_utc = datetime(2026, 10, 18, 22, 30, tzinfo=timezone.utc)
        helsinki = ZoneInfo("Europe/Helsinki")
        orchestrator = build_orchestrator(
            locations,
            source=source,
            store=store,
            clock=lambda: sunday_night_utc.astimezone(helsinki),
        )

        asyncio.run(orchestrator.scrape_restaurant("L1", "R1"))

        assert week_bucket(sunday_night_utc) == (2026, 42)
        assert orchestrator.current_week() == (2026, 43)
        assert (store.upserts[0].year, store.upserts[0].week) == (2026, 43)
        assert store.upserts[0].scrape_timestamp == sunday_night_utc
        assert store.upserts[0].scrape_timestamp.tzinfo == timezone.utc

    def test_zoned_clock_reads_the_configured_zone(self) -> None:
        now = zoned_clock("Europe/Helsinki")()

        assert now.tzinfo == ZoneInfo("Europe/Helsinki")

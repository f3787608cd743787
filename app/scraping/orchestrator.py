"""
Menu scrape orchestration.

Fans work out over locations, restaurants and URLs, joins each level, and
only calls the extraction service when a restaurant's combined document hash
differs from the current stored result.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, TypeVar
from zoneinfo import ZoneInfo

from app.domain.menu_scraping import MenuScrapeResult, ScrapeOutcome, ScrapeStage, ScrapeStatus
from app.scraping.config.models import LocationConfig, MenuScrapingSettings, RestaurantConfig
from app.scraping.document_source import DocumentSource
from app.scraping.errors import ExtractionError, FetchError, ScrapeError, StoreError
from app.scraping.extraction import ExtractionService
from app.scraping.hashing import combine_documents, document_hash, week_bucket
from app.scraping.logging_utils import log_event
from app.scraping.storage.base import MenuStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def zoned_clock(timezone_name: str) -> Callable[[], datetime]:
    """
    Return a clock reading the current time in `timezone_name`.

    Week buckets follow the local calendar of the datetimes it returns.
    """

    zone = ZoneInfo(timezone_name)
    return lambda: datetime.now(zone)


@dataclass(frozen=True)
class _RunLimits:
    """
    Concurrency bounds shared by every unit of one run.

    Created inside the running event loop for each top-level call.
    """

    fetches: asyncio.Semaphore
    extractions: asyncio.Semaphore


class MenuScrapeOrchestrator:
    """
    Scrapes configured restaurants concurrently and persists changed menus.

    Each restaurant is an isolated unit: its failure is reported as a failed
    ScrapeOutcome and never cancels sibling restaurants or locations.

    Collaborators are expected to honour their own time budget
    (`fetch_timeout_seconds`, `extraction_timeout_seconds`). The orchestrator
    stops waiting once the budget plus `timeout_grace_seconds` has passed, but
    the call keeps its concurrency slot until its worker thread returns.
    """

    def __init__(
        self,
        *,
        locations: Mapping[str, LocationConfig],
        document_source: DocumentSource,
        extraction_service: ExtractionService,
        menu_store: MenuStore,
        save_document: bool = False,
        fetch_timeout_seconds: float = 30.0,
        extraction_timeout_seconds: float = 180.0,
        max_concurrent_fetches: int = 8,
        max_concurrent_extractions: int = 2,
        timeout_grace_seconds: float = 1.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._locations = {
            location_id: LocationConfig(
                id=location.id,
                name=location.name,
                restaurants={
                    restaurant_id: restaurant
                    for restaurant_id, restaurant in location.restaurants.items()
                    if restaurant.enabled
                },
            )
            for location_id, location in locations.items()
        }
        self._document_source = document_source
        self._extraction_service = extraction_service
        self._menu_store = menu_store
        self._save_document = save_document
        self._fetch_timeout_seconds = fetch_timeout_seconds
        self._extraction_timeout_seconds = extraction_timeout_seconds
        self._max_concurrent_fetches = max(1, max_concurrent_fetches)
        self._max_concurrent_extractions = max(1, max_concurrent_extractions)
        self._timeout_grace_seconds = max(0.0, timeout_grace_seconds)
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        *,
        settings: MenuScrapingSettings,
        locations: Mapping[str, LocationConfig],
        document_source: DocumentSource,
        extraction_service: ExtractionService,
        menu_store: MenuStore,
        timezone_name: str = "UTC",
    ) -> "MenuScrapeOrchestrator":
        return cls(
            locations=locations,
            document_source=document_source,
            extraction_service=extraction_service,
            menu_store=menu_store,
            save_document=settings.save_document,
            fetch_timeout_seconds=settings.fetch_timeout_seconds,
            extraction_timeout_seconds=settings.extraction_timeout_seconds,
            max_concurrent_fetches=settings.max_concurrent_fetches,
            max_concurrent_extractions=settings.max_concurrent_extractions,
            clock=zoned_clock(timezone_name),
        )

    @property
    def locations(self) -> Mapping[str, LocationConfig]:
        return self._locations

    def current_week(self) -> tuple[int, int]:
        """
        Return the (year, ISO week) bucket new results are stored under.
        """

        return week_bucket(self._clock())

    async def scrape_all(self) -> list[ScrapeOutcome]:
        """
        Scrape every restaurant of every location and return one outcome per restaurant.
        """

        limits = self._new_limits()
        started = time.monotonic()
        log_event(logger, logging.INFO, "scrape_cycle_started", locations=len(self._locations))

        per_location = await asyncio.gather(
            *(self._scrape_location(location, limits) for location in self._locations.values())
        )
        outcomes = [outcome for outcomes in per_location for outcome in outcomes]

        self._log_summary("scrape_cycle_completed", outcomes, started)
        return outcomes

    async def scrape_location(self, location_id: str) -> list[ScrapeOutcome]:
        """
        Scrape every restaurant of one location. Unknown ids return an empty list.
        """

        location = self._locations.get(location_id)
        if location is None:
            log_event(logger, logging.DEBUG, "unknown_location", location_id=location_id)
            return []

        started = time.monotonic()
        outcomes = await self._scrape_location(location, self._new_limits())
        self._log_summary("location_scrape_completed", outcomes, started, location_id=location_id)
        return outcomes

    async def scrape_restaurant(self, location_id: str, restaurant_id: str) -> ScrapeOutcome | None:
        """
        Scrape one restaurant. Unknown ids return None without side effects.
        """

        location = self._locations.get(location_id)
        restaurant = location.restaurants.get(restaurant_id) if location is not None else None
        if location is None or restaurant is None:
            log_event(
                logger,
                logging.DEBUG,
                "unknown_restaurant",
                location_id=location_id,
                restaurant_id=restaurant_id,
            )
            return None

        return await self._run_unit(location, restaurant, self._new_limits())

    def _new_limits(self) -> _RunLimits:
        return _RunLimits(
            fetches=asyncio.Semaphore(self._max_concurrent_fetches),
            extractions=asyncio.Semaphore(self._max_concurrent_extractions),
        )

    async def _scrape_location(
        self,
        location: LocationConfig,
        limits: _RunLimits,
    ) -> list[ScrapeOutcome]:
        # _run_unit turns every Exception into an outcome, so nothing escapes this join.
        outcomes = await asyncio.gather(
            *(
                self._run_unit(location, restaurant, limits)
                for restaurant in location.restaurants.values()
            )
        )
        return list(outcomes)

    async def _run_unit(
        self,
        location: LocationConfig,
        restaurant: RestaurantConfig,
        limits: _RunLimits,
    ) -> ScrapeOutcome:
        try:
            return await self._scrape_restaurant(location, restaurant, limits)
        except Exception as exc:
            return self._failed(location, restaurant, ScrapeStage.INTERNAL, exc)

    async def _scrape_restaurant(
        self,
        location: LocationConfig,
        restaurant: RestaurantConfig,
        limits: _RunLimits,
    ) -> ScrapeOutcome:
        log_event(
            logger,
            logging.INFO,
            "restaurant_scrape_started",
            location_id=location.id,
            restaurant_id=restaurant.id,
            urls=len(restaurant.urls),
        )
        now = self._clock()
        year, week = week_bucket(now)

        try:
            existing = await asyncio.to_thread(
                self._menu_store.get,
                location.id,
                restaurant.id,
                year=year,
                week=week,
            )
        except StoreError as exc:
            return self._failed(location, restaurant, ScrapeStage.LOOKUP, exc)

        try:
            documents = await self._load_documents(restaurant, limits)
        except FetchError as exc:
            return self._failed(location, restaurant, ScrapeStage.FETCH, exc)

        combined = combine_documents(documents)
        digest = document_hash(combined)

        if existing is not None and existing.document_hash == digest:
            log_event(
                logger,
                logging.INFO,
                "restaurant_scrape_skipped",
                location_id=location.id,
                restaurant_id=restaurant.id,
                document_hash=digest,
                reason="document_hash_unchanged",
            )
            return ScrapeOutcome(
                location_id=location.id,
                restaurant_id=restaurant.id,
                status=ScrapeStatus.SKIPPED,
                document_hash=digest,
            )

        log_event(
            logger,
            logging.INFO,
            "restaurant_extraction_required",
            location_id=location.id,
            restaurant_id=restaurant.id,
            reason="no_previous_result" if existing is None else "document_hash_changed",
            previous_hash=existing.document_hash if existing is not None else None,
            document_hash=digest,
        )

        try:
            extraction_result = await self._extract(combined, restaurant.hint, limits)
        except ExtractionError as exc:
            return self._failed(location, restaurant, ScrapeStage.EXTRACT, exc, document_hash=digest)

        result = MenuScrapeResult(
            year=year,
            week=week,
            location_id=location.id,
            restaurant_id=restaurant.id,
            document=combined if self._save_document else None,
            document_hash=digest,
            scrape_timestamp=now.astimezone(timezone.utc),
            extraction_result=extraction_result,
        )

        try:
            await asyncio.to_thread(self._menu_store.upsert, result)
        except StoreError as exc:
            # Extraction already ran; the result is lost unless the failure is surfaced.
            return self._failed(location, restaurant, ScrapeStage.PERSIST, exc, document_hash=digest)

        log_event(
            logger,
            logging.INFO,
            "restaurant_scrape_updated",
            location_id=location.id,
            restaurant_id=restaurant.id,
            document_hash=digest,
            year=year,
            week=week,
        )
        return ScrapeOutcome(
            location_id=location.id,
            restaurant_id=restaurant.id,
            status=ScrapeStatus.UPDATED,
            document_hash=digest,
        )

    async def _load_documents(self, restaurant: RestaurantConfig, limits: _RunLimits) -> list[str]:
        """
        Load every URL concurrently and return documents in configured URL order.
        """

        results = await asyncio.gather(
            *(self._load_document(url, limits) for url in restaurant.urls),
            return_exceptions=True,
        )
        documents: list[str] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            documents.append(result)
        return documents

    async def _load_document(self, url: str, limits: _RunLimits) -> str:
        try:
            return await self._call_bounded(
                limits.fetches,
                self._document_source.load,
                url,
                timeout=self._fetch_timeout_seconds + self._timeout_grace_seconds,
            )
        except FetchError:
            raise
        except asyncio.TimeoutError as exc:
            raise FetchError(
                f"Timed out after {self._fetch_timeout_seconds:g}s loading {url}",
                url=url,
            ) from exc
        except Exception as exc:
            raise FetchError(f"Failed to load {url}: {exc!r}", url=url) from exc

    async def _extract(
        self,
        document: str,
        hint: str | None,
        limits: _RunLimits,
    ) -> dict[str, Any]:
        try:
            return await self._call_bounded(
                limits.extractions,
                self._extraction_service.extract,
                document,
                hint,
                timeout=self._extraction_timeout_seconds + self._timeout_grace_seconds,
            )
        except ExtractionError:
            raise
        except asyncio.TimeoutError as exc:
            raise ExtractionError(
                f"Timed out after {self._extraction_timeout_seconds:g}s extracting menus"
            ) from exc
        except Exception as exc:
            raise ExtractionError(f"Extraction failed: {exc!r}") from exc

    @staticmethod
    async def _call_bounded(
        semaphore: asyncio.Semaphore,
        func: Callable[..., T],
        *args: Any,
        timeout: float,
    ) -> T:
        """
        Run `func` in a worker thread under `semaphore`, waiting at most `timeout`.

        The slot is released when the thread returns, not when the wait gives
        up, so abandoned calls still count against the bound.
        """

        await semaphore.acquire()
        loop = asyncio.get_running_loop()
        try:
            future = loop.run_in_executor(None, func, *args)
        except BaseException:
            semaphore.release()
            raise

        def _release(done: asyncio.Future) -> None:
            semaphore.release()
            if not done.cancelled():
                # Marks the result of an abandoned call as retrieved.
                done.exception()

        future.add_done_callback(_release)
        return await asyncio.wait_for(asyncio.shield(future), timeout=timeout)

    @staticmethod
    def _failed(
        location: LocationConfig,
        restaurant: RestaurantConfig,
        stage: str,
        exc: BaseException,
        *,
        document_hash: str | None = None,
    ) -> ScrapeOutcome:
        message = str(exc) or type(exc).__name__
        log_event(
            logger,
            logging.ERROR,
            "restaurant_scrape_failed",
            exc_info=not isinstance(exc, ScrapeError),
            location_id=location.id,
            restaurant_id=restaurant.id,
            stage=stage,
            error=message,
        )
        return ScrapeOutcome(
            location_id=location.id,
            restaurant_id=restaurant.id,
            status=ScrapeStatus.FAILED,
            document_hash=document_hash,
            stage=stage,
            error=message,
        )

    @staticmethod
    def _log_summary(
        event: str,
        outcomes: list[ScrapeOutcome],
        started: float,
        **fields: Any,
    ) -> None:
        counts = {ScrapeStatus.UPDATED: 0, ScrapeStatus.SKIPPED: 0, ScrapeStatus.FAILED: 0}
        for outcome in outcomes:
            counts[outcome.status] += 1
        log_event(
            logger,
            logging.WARNING if counts[ScrapeStatus.FAILED] else logging.INFO,
            event,
            restaurants=len(outcomes),
            duration_seconds=round(time.monotonic() - started, 3),
            **counts,
            **fields,
        )

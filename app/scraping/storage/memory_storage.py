"""
In-process menu store for local runs and tests.
"""

from __future__ import annotations

import threading

from app.domain.menu_scraping import MenuScrapeResult
from app.scraping.storage.base import MenuStore

_Key = tuple[int, int, str, str]


class InMemoryMenuStore(MenuStore):
    """
    Dict-backed menu store guarded by a lock.
    """

    def __init__(self) -> None:
        self._results: dict[_Key, MenuScrapeResult] = {}
        self._lock = threading.Lock()

    def get(
        self,
        location_id: str,
        restaurant_id: str,
        *,
        year: int,
        week: int,
    ) -> MenuScrapeResult | None:
        with self._lock:
            return self._results.get((year, week, location_id, restaurant_id))

    def upsert(self, result: MenuScrapeResult) -> None:
        key = (result.year, result.week, result.location_id, result.restaurant_id)
        with self._lock:
            self._results[key] = result

    def list_for_location(
        self,
        location_id: str,
        *,
        year: int,
        week: int,
    ) -> list[MenuScrapeResult]:
        with self._lock:
            matches = [
                result
                for (res_year, res_week, res_location, _), result in self._results.items()
                if (res_year, res_week, res_location) == (year, week, location_id)
            ]
        return sorted(matches, key=lambda result: result.restaurant_id)

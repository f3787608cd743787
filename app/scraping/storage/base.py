"""
Storage layer interfaces for menu scrape results.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.menu_scraping import MenuScrapeResult


class MenuStore(ABC):
    """
    Keyed lookup and upsert of the current scrape result per location and restaurant.

    Implementations raise StoreError when the backend is unavailable, so a
    missing record (None) is never confused with a failed read.
    """

    @abstractmethod
    def get(
        self,
        location_id: str,
        restaurant_id: str,
        *,
        year: int,
        week: int,
    ) -> MenuScrapeResult | None:
        """
        Return the current result in the given week bucket, or None.
        """

    @abstractmethod
    def upsert(self, result: MenuScrapeResult) -> None:
        """
        Make `result` the current one for its key, replacing any previous one.
        """

    @abstractmethod
    def list_for_location(
        self,
        location_id: str,
        *,
        year: int,
        week: int,
    ) -> list[MenuScrapeResult]:
        """
        Return all current results of one location in the given week bucket.
        """

"""
app/domain/menu_scraping.py

Domain models for menu scraping orchestration.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


class ScrapeStatus:
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class ScrapeStage:
    LOOKUP = "lookup"
    FETCH = "fetch"
    EXTRACT = "extract"
    PERSIST = "persist"
    INTERNAL = "internal"


@dataclass(frozen=True)
class MenuScrapeResult:
    """
    Current scrape artifact for one (location, restaurant) pair in one week bucket.
    """

    year: int
    week: int
    location_id: str
    restaurant_id: str
    document: str | None
    document_hash: str
    scrape_timestamp: datetime
    extraction_result: dict[str, Any]


@dataclass(frozen=True)
class ScrapeOutcome:
    """
    Reported outcome of one restaurant scrape unit.
    """

    location_id: str
    restaurant_id: str
    status: str
    document_hash: str | None = None
    stage: str | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == ScrapeStatus.FAILED

"""
app/schemas/menu_scraping.py

Response schemas for menu scraping operations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ScrapeOutcomeResponse(BaseModel):
    """
    API response model for one restaurant scrape outcome.
    """

    location_id: str
    restaurant_id: str
    status: str
    document_hash: str | None = None
    stage: str | None = None
    error: str | None = None


class ScrapeRunResponse(BaseModel):
    """
    API response model for a multi-restaurant scrape run.
    """

    updated: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    outcomes: list[ScrapeOutcomeResponse] = Field(default_factory=list)


class MenuScrapeResultResponse(BaseModel):
    """
    API response model for the current menus of one restaurant.
    """

    year: int
    week: int
    location_id: str
    restaurant_id: str
    document_hash: str
    scrape_timestamp: datetime
    extraction_result: dict[str, Any]


class SchedulerStatusResponse(BaseModel):
    running: bool

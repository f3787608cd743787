"""
Scraping configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RestaurantConfig:
    """
    One restaurant scrape target.
    """

    id: str
    name: str
    urls: tuple[str, ...]
    hint: str | None = None
    enabled: bool = True


@dataclass(frozen=True)
class LocationConfig:
    """
    A group of restaurants scraped together, keyed by restaurant id.
    """

    id: str
    name: str
    restaurants: dict[str, RestaurantConfig] = field(default_factory=dict)


@dataclass(frozen=True)
class MenuScrapingSettings:
    """
    Runtime settings for menu scraping.
    """

    config_path: str
    save_document: bool
    user_agent: str
    fetch_timeout_seconds: float
    extraction_timeout_seconds: float
    max_concurrent_fetches: int
    max_concurrent_extractions: int
    max_retries: int
    backoff_initial_seconds: float
    backoff_multiplier: float
    rate_limit_per_second: float

"""
Environment + JSON config loader for menu scraping.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path

from db.config import load_env_files

from app.scraping.config.models import LocationConfig, MenuScrapingSettings, RestaurantConfig
from app.scraping.errors import ScrapeConfigError


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_config_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_menu_scraping_settings() -> MenuScrapingSettings:
    """
    Return cached menu scraping settings from environment variables.
    """

    load_env_files()
    config_path = _get_str_env(
        "MENU_SCRAPE_CONFIG_PATH",
        "app/scraping/config/locations.json",
    )
    return MenuScrapingSettings(
        config_path=str(_resolve_config_path(config_path)),
        save_document=_get_bool_env("MENU_SCRAPE_SAVE_DOCUMENT", False),
        user_agent=_get_str_env(
            "MENU_SCRAPE_USER_AGENT",
            "LunchScraperBot/1.0 (+https://example.com/bot)",
        ),
        fetch_timeout_seconds=max(
            1.0,
            _get_float_env("SCRAPE_FETCH_TIMEOUT_SECONDS", 30.0),
        ),
        extraction_timeout_seconds=max(
            1.0,
            _get_float_env("SCRAPE_EXTRACTION_TIMEOUT_SECONDS", 180.0),
        ),
        max_concurrent_fetches=max(
            1,
            _get_int_env("SCRAPE_MAX_CONCURRENT_FETCHES", 8),
        ),
        max_concurrent_extractions=max(
            1,
            _get_int_env("SCRAPE_MAX_CONCURRENT_EXTRACTIONS", 2),
        ),
        max_retries=max(
            0,
            _get_int_env("MENU_SCRAPE_MAX_RETRIES", 2),
        ),
        backoff_initial_seconds=max(
            0.1,
            _get_float_env("MENU_SCRAPE_BACKOFF_INITIAL_SECONDS", 0.5),
        ),
        backoff_multiplier=max(
            1.0,
            _get_float_env("MENU_SCRAPE_BACKOFF_MULTIPLIER", 2.0),
        ),
        rate_limit_per_second=max(
            0.1,
            _get_float_env("MENU_SCRAPE_RATE_LIMIT_PER_SECOND", 1.0),
        ),
    )


def load_location_configs(*, config_path: str) -> dict[str, LocationConfig]:
    """
    Load location and restaurant configurations from a JSON file, keyed by location id.
    """

    path = _resolve_config_path(config_path)
    if not path.exists():
        raise ScrapeConfigError(f"Locations config file not found: {path}")

    try:
        raw_data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ScrapeConfigError(f"Invalid JSON in locations config {path}: {exc}") from exc

    return parse_location_configs(raw_data)


def parse_location_configs(raw_data: object) -> dict[str, LocationConfig]:
    """
    Build location configurations from already-decoded JSON data.
    """

    if not isinstance(raw_data, dict):
        raise ScrapeConfigError("Invalid locations config: top-level value must be an object.")

    locations = raw_data.get("locations", [])
    if not isinstance(locations, list):
        raise ScrapeConfigError("Invalid locations config: 'locations' must be a list.")

    parsed: dict[str, LocationConfig] = {}
    for entry in locations:
        if not isinstance(entry, dict):
            continue

        location_id = _optional_str(entry.get("id"))
        if location_id is None:
            continue
        if location_id in parsed:
            raise ScrapeConfigError(f"Duplicate location id '{location_id}'.")

        parsed[location_id] = LocationConfig(
            id=location_id,
            name=_optional_str(entry.get("name")) or location_id,
            restaurants=_parse_restaurants(
                location_id=location_id,
                restaurants=entry.get("restaurants", []),
            ),
        )

    return parsed


def _parse_restaurants(*, location_id: str, restaurants: object) -> dict[str, RestaurantConfig]:
    if not isinstance(restaurants, list):
        raise ScrapeConfigError(
            f"Invalid locations config: 'restaurants' of location '{location_id}' must be a list."
        )

    parsed: dict[str, RestaurantConfig] = {}
    for entry in restaurants:
        if not isinstance(entry, dict):
            continue

        restaurant_id = _optional_str(entry.get("id"))
        if restaurant_id is None:
            continue
        if restaurant_id in parsed:
            raise ScrapeConfigError(
                f"Duplicate restaurant id '{restaurant_id}' in location '{location_id}'."
            )

        urls = _normalize_urls(entry.get("urls", []))
        if not urls:
            raise ScrapeConfigError(
                f"Restaurant '{restaurant_id}' in location '{location_id}' has no urls."
            )

        parsed[restaurant_id] = RestaurantConfig(
            id=restaurant_id,
            name=_optional_str(entry.get("name")) or restaurant_id,
            urls=urls,
            hint=_optional_str(entry.get("hint")),
            enabled=_optional_bool(entry.get("enabled"), True),
        )

    return parsed


def _normalize_urls(urls: object) -> tuple[str, ...]:
    if isinstance(urls, str):
        urls = [urls]
    if not isinstance(urls, list):
        return ()
    return tuple(item.strip() for item in urls if isinstance(item, str) and item.strip())


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _optional_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default

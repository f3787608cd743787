"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_LLM_ADAPTERS = {"openai", "mock"}
_ALLOWED_STORES = {"postgres", "memory"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_choice_env(name: str, default: str, allowed: set[str]) -> str:
    value = _get_str_env(name, default).lower()
    if value not in allowed:
        raise RuntimeError(
            f"{name}='{value}' is not valid. Allowed values: {sorted(allowed)}."
        )
    return value


@dataclass(frozen=True)
class ApiSettings:
    """
    HTTP surface settings. Requests are unauthenticated when no key is set.
    """

    api_key: str | None = None


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Periodic scrape trigger settings.
    """

    enabled: bool = False
    cron: str = "0 */2 * * 1-5"
    timezone: str = "UTC"


@dataclass(frozen=True)
class ExtractionSettings:
    """
    LLM extraction settings.
    """

    adapter: str = "openai"
    model: str = "gpt-4o-mini"
    api_key: str | None = None
    base_url: str | None = None
    max_tokens: int = 4096
    max_format_retries: int = 1


@dataclass(frozen=True)
class StoreSettings:
    """
    Menu store backend selection.
    """

    backend: str = "postgres"


@lru_cache(maxsize=1)
def get_api_settings() -> ApiSettings:
    """
    Return cached API settings from environment variables.
    """

    return ApiSettings(api_key=_get_optional_str_env("LUNCH_SCRAPER_API_KEY"))


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached scheduler settings from environment variables.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCRAPE_SCHEDULER_ENABLED", False),
        cron=_get_str_env("SCRAPE_SCHEDULER_CRON", "0 */2 * * 1-5"),
        timezone=_get_str_env("SCRAPE_SCHEDULER_TIMEZONE", "UTC"),
    )


@lru_cache(maxsize=1)
def get_extraction_settings() -> ExtractionSettings:
    """
    Return cached extraction settings from environment variables.
    """

    return ExtractionSettings(
        adapter=_get_choice_env("LLM_ADAPTER", "openai", _ALLOWED_LLM_ADAPTERS),
        model=_get_str_env("LLM_MODEL", "gpt-4o-mini"),
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env("OPENAI_API_KEY"),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
        max_tokens=max(256, _get_int_env("LLM_MAX_TOKENS", 4096)),
        max_format_retries=max(0, _get_int_env("LLM_MAX_FORMAT_RETRIES", 1)),
    )


@lru_cache(maxsize=1)
def get_store_settings() -> StoreSettings:
    """
    Return cached menu store settings from environment variables.
    """

    return StoreSettings(
        backend=_get_choice_env("MENU_STORE_BACKEND", "postgres", _ALLOWED_STORES),
    )

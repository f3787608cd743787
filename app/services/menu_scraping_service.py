"""
app/services/menu_scraping_service.py

Wiring of concrete collaborators into the menu scrape orchestrator and scheduler.
"""

from __future__ import annotations

from functools import lru_cache

from menu_extraction.adapter import BaseLLMAdapter, MockLLMAdapter, OpenAILLMAdapter

from app.config import (
    ExtractionSettings,
    get_extraction_settings,
    get_scheduler_settings,
    get_store_settings,
)
from app.scheduler.scrape_scheduler import ScrapeScheduler
from app.scraping.config import get_menu_scraping_settings, load_location_configs
from app.scraping.document_source import HttpDocumentSource
from app.scraping.extraction import LLMExtractionService
from app.scraping.orchestrator import MenuScrapeOrchestrator
from app.scraping.storage import InMemoryMenuStore, MenuStore, SQLAlchemyMenuStore


def build_llm_adapter(
    settings: ExtractionSettings,
    *,
    budget_seconds: float | None = None,
) -> BaseLLMAdapter:
    """
    Return the LLM adapter selected by LLM_ADAPTER.

    With a budget, each model request gets an equal share of it across the
    format retries and the SDK does no transport retries of its own, so one
    extraction never outlives `budget_seconds`.
    """

    if settings.adapter == "mock":
        return MockLLMAdapter()
    return OpenAILLMAdapter(
        model=settings.model,
        max_tokens=settings.max_tokens,
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout_seconds=(
            budget_seconds / (settings.max_format_retries + 1) if budget_seconds else None
        ),
        client_max_retries=0 if budget_seconds else None,
    )


@lru_cache(maxsize=1)
def get_menu_store() -> MenuStore:
    """
    Build and cache the menu store selected by MENU_STORE_BACKEND.
    """

    if get_store_settings().backend == "memory":
        return InMemoryMenuStore()
    return SQLAlchemyMenuStore()


@lru_cache(maxsize=1)
def get_menu_scrape_orchestrator() -> MenuScrapeOrchestrator:
    """
    Build and cache the orchestrator from environment settings and the locations file.
    """

    settings = get_menu_scraping_settings()
    extraction_settings = get_extraction_settings()
    adapter = build_llm_adapter(
        extraction_settings,
        budget_seconds=settings.extraction_timeout_seconds,
    )
    return MenuScrapeOrchestrator.from_settings(
        settings=settings,
        locations=load_location_configs(config_path=settings.config_path),
        document_source=HttpDocumentSource(settings=settings),
        extraction_service=LLMExtractionService(
            adapter=adapter,
            max_format_retries=extraction_settings.max_format_retries,
        ),
        menu_store=get_menu_store(),
        timezone_name=get_scheduler_settings().timezone,
    )


@lru_cache(maxsize=1)
def get_scrape_scheduler() -> ScrapeScheduler:
    """
    Build and cache the process-wide scrape scheduler. It is not started here.
    """

    return ScrapeScheduler.from_settings(
        orchestrator=get_menu_scrape_orchestrator(),
        settings=get_scheduler_settings(),
    )

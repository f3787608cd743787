"""
app/services package marker.
"""

from app.services.menu_scraping_service import (
    build_llm_adapter,
    get_menu_scrape_orchestrator,
    get_menu_store,
    get_scrape_scheduler,
)

__all__ = [
    "build_llm_adapter",
    "get_menu_scrape_orchestrator",
    "get_menu_store",
    "get_scrape_scheduler",
]

"""
app/repositories package marker.
"""

from app.repositories.menu_scrape_result_repository import MenuScrapeResultRepository

__all__ = [
    "MenuScrapeResultRepository",
]

"""
app/domain package marker.
"""

from app.domain.menu_scraping import MenuScrapeResult, ScrapeOutcome, ScrapeStage, ScrapeStatus

__all__ = [
    "MenuScrapeResult",
    "ScrapeOutcome",
    "ScrapeStage",
    "ScrapeStatus",
]

"""
app/schemas package marker.
"""

from app.schemas.menu_scraping import (
    MenuScrapeResultResponse,
    SchedulerStatusResponse,
    ScrapeOutcomeResponse,
    ScrapeRunResponse,
)

__all__ = [
    "MenuScrapeResultResponse",
    "SchedulerStatusResponse",
    "ScrapeOutcomeResponse",
    "ScrapeRunResponse",
]

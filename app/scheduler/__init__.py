"""
app/scheduler package marker.
"""

from app.scheduler.scrape_scheduler import ScrapeScheduler

__all__ = ["ScrapeScheduler"]

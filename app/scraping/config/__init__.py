"""
Config helpers for menu scraping.
"""

from app.scraping.config.loader import get_menu_scraping_settings, load_location_configs
from app.scraping.config.models import LocationConfig, MenuScrapingSettings, RestaurantConfig

__all__ = [
    "LocationConfig",
    "MenuScrapingSettings",
    "RestaurantConfig",
    "get_menu_scraping_settings",
    "load_location_configs",
]

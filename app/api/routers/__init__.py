"""
app/api/routers package marker.
"""

from app.api.routers.menu_scraping import router as menu_scraping_router
from app.api.routers.menus import router as menus_router

__all__ = [
    "menu_scraping_router",
    "menus_router",
]

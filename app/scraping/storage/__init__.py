"""
Storage layer exports.
"""

from app.scraping.storage.base import MenuStore
from app.scraping.storage.memory_storage import InMemoryMenuStore
from app.scraping.storage.sqlalchemy_storage import SQLAlchemyMenuStore

__all__ = ["InMemoryMenuStore", "MenuStore", "SQLAlchemyMenuStore"]

"""
SQLAlchemy-backed menu store.
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.menu_scraping import MenuScrapeResult
from app.repositories.menu_scrape_result_repository import MenuScrapeResultRepository
from app.scraping.errors import StoreError
from app.scraping.storage.base import MenuStore
from db.session import SessionLocal


class SQLAlchemyMenuStore(MenuStore):
    """
    Persist menu scrape results through the repository.

    Opens one session per call so it can be used from concurrent worker threads.
    """

    def __init__(self, *, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def get(
        self,
        location_id: str,
        restaurant_id: str,
        *,
        year: int,
        week: int,
    ) -> MenuScrapeResult | None:
        try:
            with self._session_factory() as session:
                record = MenuScrapeResultRepository(session).get(
                    location_id=location_id,
                    restaurant_id=restaurant_id,
                    year=year,
                    week=week,
                )
                if record is None:
                    return None
                return MenuScrapeResultRepository.to_domain(record)
        except SQLAlchemyError as exc:
            raise StoreError(
                f"Failed to read scrape result for {location_id}/{restaurant_id}: {exc}"
            ) from exc

    def upsert(self, result: MenuScrapeResult) -> None:
        try:
            with self._session_factory() as session:
                try:
                    MenuScrapeResultRepository(session).upsert(result)
                    session.commit()
                except SQLAlchemyError:
                    session.rollback()
                    raise
        except SQLAlchemyError as exc:
            raise StoreError(
                f"Failed to save scrape result for {result.location_id}/{result.restaurant_id}: {exc}"
            ) from exc

    def list_for_location(
        self,
        location_id: str,
        *,
        year: int,
        week: int,
    ) -> list[MenuScrapeResult]:
        try:
            with self._session_factory() as session:
                records = MenuScrapeResultRepository(session).list_for_location(
                    location_id=location_id,
                    year=year,
                    week=week,
                )
                return [MenuScrapeResultRepository.to_domain(record) for record in records]
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to list scrape results for {location_id}: {exc}") from exc

"""
app/repositories/menu_scrape_result_repository.py

Persistence layer for menu scrape results.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.domain.menu_scraping import MenuScrapeResult
from db.models.menu_scrape_result import MenuScrapeResultRecord

_BUCKET_CONSTRAINT = "uq_menu_scrape_results_bucket"


class MenuScrapeResultRepository:
    """
    Repository for the current scrape result per (year, week, location, restaurant).
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(
        self,
        *,
        location_id: str,
        restaurant_id: str,
        year: int,
        week: int,
    ) -> MenuScrapeResultRecord | None:
        stmt = select(MenuScrapeResultRecord).where(
            MenuScrapeResultRecord.location_id == location_id,
            MenuScrapeResultRecord.restaurant_id == restaurant_id,
            MenuScrapeResultRecord.year == year,
            MenuScrapeResultRecord.week == week,
        )
        return self._session.scalars(stmt).one_or_none()

    def list_for_location(
        self,
        *,
        location_id: str,
        year: int,
        week: int,
    ) -> list[MenuScrapeResultRecord]:
        stmt = (
            select(MenuScrapeResultRecord)
            .where(
                MenuScrapeResultRecord.location_id == location_id,
                MenuScrapeResultRecord.year == year,
                MenuScrapeResultRecord.week == week,
            )
            .order_by(MenuScrapeResultRecord.restaurant_id)
        )
        return list(self._session.scalars(stmt).all())

    def upsert(self, result: MenuScrapeResult) -> None:
        """
        Insert the result or replace the current one in its week bucket.
        """

        values = {
            "year": result.year,
            "week": result.week,
            "location_id": result.location_id,
            "restaurant_id": result.restaurant_id,
            "document": result.document,
            "document_hash": result.document_hash,
            "scrape_timestamp": result.scrape_timestamp,
            "extraction_result": result.extraction_result,
        }
        stmt = insert(MenuScrapeResultRecord).values(values)
        stmt = stmt.on_conflict_do_update(
            constraint=_BUCKET_CONSTRAINT,
            set_={
                "document": stmt.excluded.document,
                "document_hash": stmt.excluded.document_hash,
                "scrape_timestamp": stmt.excluded.scrape_timestamp,
                "extraction_result": stmt.excluded.extraction_result,
                "updated_at": datetime.now(timezone.utc),
            },
        )
        self._session.execute(stmt)

    @staticmethod
    def to_domain(record: MenuScrapeResultRecord) -> MenuScrapeResult:
        return MenuScrapeResult(
            year=record.year,
            week=record.week,
            location_id=record.location_id,
            restaurant_id=record.restaurant_id,
            document=record.document,
            document_hash=record.document_hash,
            scrape_timestamp=record.scrape_timestamp,
            extraction_result=record.extraction_result,
        )

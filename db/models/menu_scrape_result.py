"""
db/models/menu_scrape_result.py

Current menu scrape result per location, restaurant and ISO week.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class MenuScrapeResultRecord(Base, TimestampMixin):
    __tablename__ = "menu_scrape_results"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="ISO week-numbering year",
    )
    week: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="ISO week number",
    )
    location_id: Mapped[str] = mapped_column(String(100), nullable=False)
    restaurant_id: Mapped[str] = mapped_column(String(100), nullable=False)
    document: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Combined normalized document, only kept when document saving is enabled",
    )
    document_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    scrape_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    extraction_result: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "year",
            "week",
            "location_id",
            "restaurant_id",
            name="uq_menu_scrape_results_bucket",
        ),
        Index("ix_menu_scrape_results_location_week", "location_id", "year", "week"),
    )

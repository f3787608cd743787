"""create menu_scrape_results table

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "menu_scrape_results",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False, comment="ISO week-numbering year"),
        sa.Column("week", sa.Integer(), nullable=False, comment="ISO week number"),
        sa.Column("location_id", sa.String(length=100), nullable=False),
        sa.Column("restaurant_id", sa.String(length=100), nullable=False),
        sa.Column(
            "document",
            sa.Text(),
            nullable=True,
            comment="Combined normalized document, only kept when document saving is enabled",
        ),
        sa.Column("document_hash", sa.String(length=64), nullable=False),
        sa.Column("scrape_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("extraction_result", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_menu_scrape_results"),
        sa.UniqueConstraint(
            "year",
            "week",
            "location_id",
            "restaurant_id",
            name="uq_menu_scrape_results_bucket",
        ),
    )
    op.create_index(
        "ix_menu_scrape_results_location_week",
        "menu_scrape_results",
        ["location_id", "year", "week"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_menu_scrape_results_location_week", table_name="menu_scrape_results")
    op.drop_table("menu_scrape_results")

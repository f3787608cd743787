from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - A database URL is required unless MENU_STORE_BACKEND=memory.
    - An LLM API key is required unless LLM_ADAPTER=mock.
    - SCRAPE_SCHEDULER_CRON must be a valid five-field crontab expression.
    """

    from apscheduler.triggers.cron import CronTrigger

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Menu store -----------------------------------------------------
    store_backend = os.getenv("MENU_STORE_BACKEND", "postgres").strip().lower()
    if store_backend not in {"postgres", "memory"}:
        errors.append(
            f"MENU_STORE_BACKEND='{store_backend}' is not valid. Allowed values: ['memory', 'postgres']."
        )
    elif store_backend == "postgres":
        database_url = os.getenv("DATABASE_URL", "").strip()
        cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
        local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
        if not (database_url or cloud_database_url or local_database_url):
            errors.append(
                "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL or "
                "LOCAL_DATABASE_URL, or run with MENU_STORE_BACKEND=memory."
            )

    # --- LLM API key ----------------------------------------------------
    adapter = os.getenv("LLM_ADAPTER", "openai").strip().lower()
    if adapter != "mock":
        llm_api_key = os.getenv("LLM_API_KEY", "").strip()
        openai_api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not llm_api_key and not openai_api_key:
            errors.append(
                "LLM API key is not set. Provide LLM_API_KEY or OPENAI_API_KEY, "
                "or run with LLM_ADAPTER=mock."
            )

    # --- Scheduler cadence ----------------------------------------------
    cron = os.getenv("SCRAPE_SCHEDULER_CRON", "").strip()
    if cron:
        try:
            CronTrigger.from_crontab(cron)
        except ValueError as exc:
            errors.append(f"SCRAPE_SCHEDULER_CRON='{cron}' is not a valid crontab expression: {exc}")

    if errors:
        raise RuntimeError(
            "Startup validation failed - missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Abort startup when tables registered on Base.metadata are missing.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 - registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch - %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate the store, start the scrape scheduler when enabled; shut it down on exit."""
    from app.config import get_scheduler_settings, get_store_settings
    from app.services.menu_scraping_service import get_scrape_scheduler

    log = logging.getLogger(__name__)
    if get_store_settings().backend == "postgres":
        _check_db()
        log.info("Database connectivity confirmed")
        _check_schema()
        log.info("Database schema validated")

    scheduler = get_scrape_scheduler()
    if get_scheduler_settings().enabled:
        scheduler.start()
        log.info("Scrape scheduler started")
    else:
        log.info("Scrape scheduler disabled (SCRAPE_SCHEDULER_ENABLED is false)")
    try:
        yield
    finally:
        if scheduler.is_running():
            scheduler.shutdown(wait=True)
            log.info("Scrape scheduler shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Lunch Scraper API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import menu_scraping_router, menus_router

    application.include_router(menu_scraping_router)
    application.include_router(menus_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()

"""
Run menu scraping from CLI.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os

from app.domain.menu_scraping import ScrapeOutcome, ScrapeStatus
from app.services.menu_scraping_service import get_menu_scrape_orchestrator


def _outcome_payload(outcome: ScrapeOutcome) -> dict[str, str | None]:
    return {
        "location_id": outcome.location_id,
        "restaurant_id": outcome.restaurant_id,
        "status": outcome.status,
        "document_hash": outcome.document_hash,
        "stage": outcome.stage,
        "error": outcome.error,
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Scrape lunch menus once and print the outcomes.")
    parser.add_argument(
        "--location",
        dest="location",
        default=None,
        help="Optional location id from the locations config file.",
    )
    parser.add_argument(
        "--restaurant",
        dest="restaurant",
        default=None,
        help="Optional restaurant id; requires --location.",
    )
    args = parser.parse_args()
    if args.restaurant and not args.location:
        parser.error("--restaurant requires --location")

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    orchestrator = get_menu_scrape_orchestrator()
    if args.restaurant:
        outcome = asyncio.run(orchestrator.scrape_restaurant(args.location, args.restaurant))
        outcomes = [outcome] if outcome is not None else []
    elif args.location:
        outcomes = asyncio.run(orchestrator.scrape_location(args.location))
    else:
        outcomes = asyncio.run(orchestrator.scrape_all())

    print(json.dumps([_outcome_payload(outcome) for outcome in outcomes], indent=2))
    return 1 if any(outcome.status == ScrapeStatus.FAILED for outcome in outcomes) else 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
app/api/routers/menus.py

Read access to the current week's scraped menus.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import require_api_key
from app.schemas.menu_scraping import MenuScrapeResultResponse
from app.scraping.errors import StoreError
from app.scraping.orchestrator import MenuScrapeOrchestrator
from app.scraping.storage import MenuStore
from app.services.menu_scraping_service import get_menu_scrape_orchestrator, get_menu_store

router = APIRouter(tags=["menus"], dependencies=[Depends(require_api_key)])


@router.get("/menus/{location_id}", response_model=list[MenuScrapeResultResponse])
def get_location_menus(
    location_id: str,
    orchestrator: MenuScrapeOrchestrator = Depends(get_menu_scrape_orchestrator),
    store: MenuStore = Depends(get_menu_store),
) -> list[MenuScrapeResultResponse]:
    """
    Return the current week's menus of every restaurant in a location.
    """

    if location_id not in orchestrator.locations:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown location '{location_id}'.",
        )

    year, week = orchestrator.current_week()
    try:
        results = store.list_for_location(location_id, year=year, week=week)
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc

    return [
        MenuScrapeResultResponse(
            year=result.year,
            week=result.week,
            location_id=result.location_id,
            restaurant_id=result.restaurant_id,
            document_hash=result.document_hash,
            scrape_timestamp=result.scrape_timestamp,
            extraction_result=result.extraction_result,
        )
        for result in results
    ]

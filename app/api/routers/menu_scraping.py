"""
app/api/routers/menu_scraping.py

On-demand menu scraping endpoints and scheduler status.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import require_api_key
from app.domain.menu_scraping import ScrapeOutcome, ScrapeStatus
from app.scheduler.scrape_scheduler import ScrapeScheduler
from app.schemas.menu_scraping import (
    SchedulerStatusResponse,
    ScrapeOutcomeResponse,
    ScrapeRunResponse,
)
from app.scraping.orchestrator import MenuScrapeOrchestrator
from app.services.menu_scraping_service import get_menu_scrape_orchestrator, get_scrape_scheduler

router = APIRouter(tags=["menu-scraping"], dependencies=[Depends(require_api_key)])


def _to_response(outcome: ScrapeOutcome) -> ScrapeOutcomeResponse:
    return ScrapeOutcomeResponse(
        location_id=outcome.location_id,
        restaurant_id=outcome.restaurant_id,
        status=outcome.status,
        document_hash=outcome.document_hash,
        stage=outcome.stage,
        error=outcome.error,
    )


def _to_run_response(outcomes: list[ScrapeOutcome]) -> ScrapeRunResponse:
    return ScrapeRunResponse(
        updated=sum(1 for outcome in outcomes if outcome.status == ScrapeStatus.UPDATED),
        skipped=sum(1 for outcome in outcomes if outcome.status == ScrapeStatus.SKIPPED),
        failed=sum(1 for outcome in outcomes if outcome.status == ScrapeStatus.FAILED),
        outcomes=[_to_response(outcome) for outcome in outcomes],
    )


@router.post("/scrape", response_model=ScrapeRunResponse)
async def scrape_all(
    orchestrator: MenuScrapeOrchestrator = Depends(get_menu_scrape_orchestrator),
) -> ScrapeRunResponse:
    """
    Scrape every configured restaurant in every location.
    """

    return _to_run_response(await orchestrator.scrape_all())


@router.post("/scrape/{location_id}", response_model=ScrapeRunResponse)
async def scrape_location(
    location_id: str,
    orchestrator: MenuScrapeOrchestrator = Depends(get_menu_scrape_orchestrator),
) -> ScrapeRunResponse:
    """
    Scrape every configured restaurant of one location.
    """

    if location_id not in orchestrator.locations:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown location '{location_id}'.",
        )
    return _to_run_response(await orchestrator.scrape_location(location_id))


@router.post("/scrape/{location_id}/{restaurant_id}", response_model=ScrapeOutcomeResponse)
async def scrape_restaurant(
    location_id: str,
    restaurant_id: str,
    orchestrator: MenuScrapeOrchestrator = Depends(get_menu_scrape_orchestrator),
) -> ScrapeOutcomeResponse:
    """
    Scrape one restaurant.
    """

    outcome = await orchestrator.scrape_restaurant(location_id, restaurant_id)
    if outcome is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown restaurant '{restaurant_id}' in location '{location_id}'.",
        )
    return _to_response(outcome)


@router.get("/scheduler", response_model=SchedulerStatusResponse)
def scheduler_status(
    scheduler: ScrapeScheduler = Depends(get_scrape_scheduler),
) -> SchedulerStatusResponse:
    return SchedulerStatusResponse(running=scheduler.is_running())

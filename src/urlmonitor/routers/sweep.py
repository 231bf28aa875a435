from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor.database import get_db
from urlmonitor.fallback import FallbackCoordinator
from urlmonitor.schemas import (
    AlternateCheckResult,
    OutcomeResponse,
    SweepResponse,
    SweepResultResponse,
)
from urlmonitor.sweep import SweepOrchestrator

router = APIRouter(prefix="/api", tags=["sweep"])


@router.post("/sweep", response_model=SweepResponse)
async def sweep_all(db: AsyncSession = Depends(get_db)):
    results = await SweepOrchestrator(db).sweep_all()
    return SweepResponse(
        results=[SweepResultResponse.from_result(r) for r in results],
        total=len(results),
        pending_alternate_checks=sum(1 for r in results if r.needs_alternate_check),
    )


@router.post("/sweep/{target_id}", response_model=SweepResultResponse)
async def sweep_one(target_id: int, db: AsyncSession = Depends(get_db)):
    result = await SweepOrchestrator(db).sweep_one(target_id)
    return SweepResultResponse.from_result(result)


@router.post("/alternate-check-result", response_model=OutcomeResponse, status_code=201)
async def record_alternate_check(
    body: AlternateCheckResult,
    db: AsyncSession = Depends(get_db),
):
    """Record the outcome of a browser-side check for a target the server could not reach."""
    outcome = await FallbackCoordinator(db).record_alternate(
        target_id=body.target_id,
        is_up=body.is_up,
        response_time_ms=body.response_time_ms,
        status_code=body.status_code,
        error_message=body.error_message,
    )
    return OutcomeResponse.model_validate(outcome)

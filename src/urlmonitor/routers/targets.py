import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor.archive import Archiver
from urlmonitor.auth import get_current_admin_api
from urlmonitor.config import get_settings
from urlmonitor.database import get_db
from urlmonitor.models.admin_user import AdminUser
from urlmonitor.registry import TargetRegistry
from urlmonitor.schemas import (
    ArchiveEntryResponse,
    Environment,
    OutcomeResponse,
    SweepResultResponse,
    TargetCreate,
    TargetCreated,
    TargetDetail,
    TargetResponse,
    TargetUpdate,
    TargetWithStatus,
)
from urlmonitor.sweep import SweepOrchestrator
from urlmonitor.timeline import TimelineStore

logger = logging.getLogger("urlmonitor.api")
settings = get_settings()

router = APIRouter(prefix="/api/targets", tags=["targets"])


@router.get("", response_model=list[TargetWithStatus])
async def list_targets(
    environment: Optional[Environment] = None,
    db: AsyncSession = Depends(get_db),
):
    targets = await TargetRegistry(db).list_targets(environment)
    timeline = TimelineStore(db)

    items = []
    for target in targets:
        latest = await timeline.latest(target.id)
        uptime = await timeline.uptime_percentage(target.id, days=settings.uptime_window_days)
        items.append(TargetWithStatus(
            **TargetResponse.model_validate(target).model_dump(),
            latest_outcome=OutcomeResponse.model_validate(latest) if latest else None,
            uptime_percentage=round(uptime, 2),
        ))
    return items


@router.post("", response_model=TargetCreated, status_code=201)
async def create_target(
    body: TargetCreate,
    admin: AdminUser = Depends(get_current_admin_api),
    db: AsyncSession = Depends(get_db),
):
    target = await TargetRegistry(db).create(body.address, body.name, body.environment)
    created = TargetResponse.model_validate(target)

    # First check right away; a failure here must not undo the registration
    check = None
    try:
        result = await SweepOrchestrator(db).sweep_one(target.id)
        check = SweepResultResponse.from_result(result)
    except Exception as e:
        logger.error(f"Initial check of target {target.id} failed: {e}")
        await db.rollback()

    return TargetCreated(
        **created.model_dump(),
        message="Target added successfully",
        check=check,
    )


@router.get("/{target_id}", response_model=TargetDetail)
async def get_target(
    target_id: int,
    db: AsyncSession = Depends(get_db),
):
    target = await TargetRegistry(db).get(target_id)
    timeline = TimelineStore(db)
    outcomes = await timeline.window(target_id, days=settings.uptime_window_days)
    uptime = await timeline.uptime_percentage(target_id, days=settings.uptime_window_days)
    return TargetDetail(
        target=TargetResponse.model_validate(target),
        outcomes=[OutcomeResponse.model_validate(o) for o in outcomes],
        uptime_percentage=round(uptime, 2),
    )


@router.put("/{target_id}", response_model=TargetResponse)
async def update_target(
    target_id: int,
    body: TargetUpdate,
    admin: AdminUser = Depends(get_current_admin_api),
    db: AsyncSession = Depends(get_db),
):
    target = await TargetRegistry(db).update(
        target_id, body.address, body.name, body.environment
    )
    return TargetResponse.model_validate(target)


@router.delete("/{target_id}", status_code=204)
async def delete_target(
    target_id: int,
    admin: AdminUser = Depends(get_current_admin_api),
    db: AsyncSession = Depends(get_db),
):
    await TargetRegistry(db).delete(target_id)
    return Response(status_code=204)


@router.get("/{target_id}/archive", response_model=list[ArchiveEntryResponse])
async def get_target_archive(
    target_id: int,
    limit: int = 100,
    admin: AdminUser = Depends(get_current_admin_api),
    db: AsyncSession = Depends(get_db),
):
    limit = max(1, min(limit, 10000))
    entries = await Archiver(db).archived_for_target(target_id, limit)
    return [ArchiveEntryResponse.model_validate(e) for e in entries]

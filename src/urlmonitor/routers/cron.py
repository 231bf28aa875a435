from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from urlmonitor.auth import has_cron_authorization
from urlmonitor.database import get_session_factory
from urlmonitor.scheduler import run_scheduled_jobs

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.api_route("", methods=["GET", "POST"])
async def cron(
    request: Request,
    archive: bool = False,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Entry point for an external scheduler: sweep all, archive at the daily archive time."""
    if not has_cron_authorization(request):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    summary = await run_scheduled_jobs(session_factory, force_archive=archive)
    if summary["sweep"] is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to check URLs: {'; '.join(summary['errors'])}",
        )
    return {"success": True, **summary}

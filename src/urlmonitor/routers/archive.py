from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor.archive import Archiver
from urlmonitor.auth import get_current_admin_api, get_session_admin, has_cron_authorization
from urlmonitor.database import get_db
from urlmonitor.models.admin_user import AdminUser
from urlmonitor.schemas import ArchiveRunResponse, ArchiveStatusResponse
from urlmonitor.timeutils import utcnow

router = APIRouter(prefix="/api/archive", tags=["archive"])


@router.get("", response_model=ArchiveStatusResponse)
async def archive_status(db: AsyncSession = Depends(get_db)):
    return ArchiveStatusResponse(**await Archiver(db).archive_status())


@router.post("", response_model=ArchiveRunResponse)
async def run_archive(request: Request, db: AsyncSession = Depends(get_db)):
    # Admin session or the cron bearer token
    if not has_cron_authorization(request) and await get_session_admin(request, db) is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    result = await Archiver(db).archive_old_entries()
    return ArchiveRunResponse(
        success=True,
        message=f"Archived {result.archived} records",
        archived=result.archived,
        deleted=result.deleted,
    )


@router.get("/export")
async def export_archive(
    admin: AdminUser = Depends(get_current_admin_api),
    db: AsyncSession = Depends(get_db),
):
    export = await Archiver(db).build_export()
    if export.total_records == 0:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No archived records found. Records are automatically archived after 7 days.",
        )

    filename = f"url-status-archive-{utcnow():%Y-%m-%d}.txt"
    return Response(
        content=export.content,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

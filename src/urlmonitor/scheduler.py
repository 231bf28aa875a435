"""
APScheduler integration — periodic sweeps and the daily archive run.

``run_scheduled_jobs`` is the entry point for external cron callers; the
in-process scheduler calls ``scheduled_sweep`` and ``scheduled_archive``
directly. In every path a failed sweep and a failed archive are independent.
"""
import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from urlmonitor.archive import Archiver
from urlmonitor.config import get_settings
from urlmonitor.database import get_session_factory
from urlmonitor.sweep import SweepOrchestrator
from urlmonitor.timeutils import to_local, utcnow

logger = logging.getLogger("urlmonitor.scheduler")
settings = get_settings()

scheduler = AsyncIOScheduler()

SessionFactory = async_sessionmaker[AsyncSession]


async def scheduled_sweep(session_factory: SessionFactory | None = None) -> dict:
    """Sweep every target. Pending alternate checks are dropped: there is no browser here."""
    session_factory = session_factory or get_session_factory()
    async with session_factory() as db:
        results = await SweepOrchestrator(db).sweep_all()
    pending = sum(1 for r in results if r.needs_alternate_check)
    if pending:
        logger.info(f"{pending} target(s) need an alternate check; nothing recorded for them")
    return {"checked": len(results), "pending_alternate_checks": pending}


async def scheduled_archive(
    session_factory: SessionFactory | None = None, now: datetime | None = None
) -> dict:
    session_factory = session_factory or get_session_factory()
    async with session_factory() as db:
        result = await Archiver(db).archive_old_entries(now)
    return {"archived": result.archived, "deleted": result.deleted}


def is_archive_time(now: datetime | None = None) -> bool:
    """Whether ``now`` falls within the archive window around the configured local time."""
    local = to_local(now or utcnow(), settings.display_timezone)
    current = local.hour * 60 + local.minute
    scheduled = settings.archive_hour * 60 + settings.archive_minute
    return abs(current - scheduled) <= settings.archive_window_minutes


async def run_scheduled_jobs(
    session_factory: SessionFactory | None = None,
    now: datetime | None = None,
    force_archive: bool = False,
) -> dict:
    """Sweep, then archive when it is archive time. Either step may fail alone."""
    summary: dict = {"sweep": None, "archive": None, "errors": []}

    try:
        summary["sweep"] = await scheduled_sweep(session_factory)
    except Exception as e:
        logger.error(f"Scheduled sweep failed: {e}")
        summary["errors"].append(f"sweep: {e}")

    if force_archive or is_archive_time(now):
        try:
            summary["archive"] = await scheduled_archive(session_factory, now)
            logger.info(f"Archive completed: {summary['archive']['archived']} record(s) archived")
        except Exception as e:
            # Archival trouble must not fail the sweep that ran alongside it
            logger.error(f"Scheduled archive failed: {e}")
            summary["errors"].append(f"archive: {e}")

    return summary


async def _sweep_job() -> None:
    try:
        await scheduled_sweep()
    except Exception as e:
        logger.error(f"Scheduled sweep failed: {e}")


async def _archive_job() -> None:
    try:
        result = await scheduled_archive()
        logger.info(f"Archive completed: {result['archived']} record(s) archived")
    except Exception as e:
        logger.error(f"Scheduled archive failed: {e}")


def start_scheduler() -> None:
    if settings.sweep_interval_minutes > 0:
        scheduler.add_job(
            _sweep_job,
            trigger=IntervalTrigger(minutes=settings.sweep_interval_minutes),
            id="sweep_all",
            replace_existing=True,
            max_instances=1,
        )
        logger.info(f"Sweeping all targets every {settings.sweep_interval_minutes} minute(s)")

    scheduler.add_job(
        _archive_job,
        trigger=CronTrigger(
            hour=settings.archive_hour,
            minute=settings.archive_minute,
            timezone=settings.display_timezone,
        ),
        id="archive_old_entries",
        replace_existing=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info(
        f"Scheduler started; archiving daily at "
        f"{settings.archive_hour:02d}:{settings.archive_minute:02d} {settings.display_timezone}"
    )


def stop_scheduler() -> None:
    """Shut down the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

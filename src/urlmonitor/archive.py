"""
Retention engine — moves outcomes past the retention horizon into the archive, and exports it.

Each outcome moves in its own transaction: the archive copy is flushed first,
then the source row is deleted, then both commit together. If the delete finds
nothing (another archiver got there first) the copy is rolled back, so an
outcome is never lost and never archived twice.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor.config import get_settings
from urlmonitor.errors import StorageError
from urlmonitor.models.archive_entry import ArchiveEntry
from urlmonitor.registry import TargetRegistry
from urlmonitor.timeline import TimelineStore
from urlmonitor.timeutils import as_naive_utc, format_local, utcnow

logger = logging.getLogger("urlmonitor.archive")
settings = get_settings()

RULE = "=" * 80
THIN_RULE = "-" * 80

TIMEZONE_LABELS = {
    "America/Chicago": "CT",
    "America/New_York": "ET",
    "America/Denver": "MT",
    "America/Los_Angeles": "PT",
    "UTC": "UTC",
}


@dataclass
class ArchiveResult:
    archived: int
    deleted: int


@dataclass
class ArchiveExport:
    content: str
    total_records: int
    total_targets: int


def _export_row(timestamp: str, status: str, code: str, response_time: str, error: str) -> str:
    return f"{timestamp:<25} | {status:<8} | {code:<6} | {response_time:<15} | {error}"


def format_archive_entry(entry: ArchiveEntry, tz_name: str) -> str:
    return _export_row(
        format_local(entry.checked_at, tz_name),
        "UP" if entry.is_up else "DOWN",
        str(entry.status_code) if entry.status_code is not None else "N/A",
        f"{entry.response_time_ms}ms" if entry.response_time_ms is not None else "N/A",
        entry.error_message or "-",
    )


class Archiver:
    def __init__(self, session: AsyncSession, timeline: TimelineStore | None = None):
        self.session = session
        self.timeline = timeline or TimelineStore(session)

    def cutoff(self, now: datetime | None = None) -> datetime:
        now = as_naive_utc(now) if now else utcnow()
        return now - timedelta(days=settings.retention_days)

    async def archive_old_entries(self, now: datetime | None = None) -> ArchiveResult:
        """Move every outcome checked strictly before ``now - retention`` into the archive."""
        now = as_naive_utc(now) if now else utcnow()
        cutoff = self.cutoff(now)
        archived = deleted = 0

        try:
            candidates = await self.timeline.older_than(cutoff)
            for outcome in candidates:
                await self.timeline.insert_archive_entry(outcome, archived_at=now)
                if not await self.timeline.delete(outcome.id):
                    await self.session.rollback()
                    logger.debug(f"Outcome {outcome.id} already archived elsewhere; skipped")
                    continue
                await self.session.commit()
                archived += 1
                deleted += 1
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Archival stopped after {archived} record(s): {e}")
            raise StorageError(f"Archival stopped after {archived} record(s): {e}") from e

        logger.info(f"Archived {archived} outcome(s) older than {cutoff:%Y-%m-%d %H:%M:%S} UTC")
        return ArchiveResult(archived=archived, deleted=deleted)

    async def archive_status(self, now: datetime | None = None) -> dict:
        return {
            "records_to_archive": await self.timeline.count_older_than(self.cutoff(now)),
            "total_archived": await self.timeline.count_archive_entries(),
        }

    async def archived_for_target(self, target_id: int, limit: int = 100) -> list[ArchiveEntry]:
        await TargetRegistry(self.session).get(target_id)
        return await self.timeline.recent_archive_entries(target_id, limit)

    async def build_export(self) -> ArchiveExport:
        """Render the archive of every current target. Same archive, same bytes."""
        tz_name = settings.display_timezone
        tz_label = TIMEZONE_LABELS.get(tz_name, tz_name)
        targets = await TargetRegistry(self.session).all_by_name()

        lines = ["URL Status Archive", RULE, ""]
        total_records = 0

        for target in targets:
            entries = await self.timeline.archive_entries(target.id)
            if not entries:
                continue
            total_records += len(entries)
            lines += [
                "",
                f"URL: {target.name}",
                f"Link: {target.address}",
                f"Total Archived Records: {len(entries)}",
                THIN_RULE,
                _export_row(f"Timestamp ({tz_label})", "Status", "Code", "Response Time", "Error"),
                THIN_RULE,
            ]
            lines += [format_archive_entry(entry, tz_name) for entry in entries]
            lines.append("")

        lines += [
            "",
            RULE,
            f"End of Archive - Total URLs: {len(targets)}",
            f"Total Archived Records: {total_records}",
        ]
        if total_records == 0:
            lines += [
                "",
                f"Note: No archived records found. Records are automatically archived "
                f"after {settings.retention_days} days.",
            ]

        return ArchiveExport(
            content="\n".join(lines) + "\n",
            total_records=total_records,
            total_targets=len(targets),
        )

    async def export_to_text(self) -> str:
        return (await self.build_export()).content

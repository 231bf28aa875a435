"""
Timeline store — the storage boundary for outcomes and archive entries.

Rows leave this module only as ProbeOutcome values; every write passes
validate_outcome first. Outcomes are inserted and deleted, never updated.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor.errors import InvalidOutcomeError
from urlmonitor.models.archive_entry import ArchiveEntry
from urlmonitor.models.outcome import Outcome
from urlmonitor.ping import ProbeOutcome
from urlmonitor.timeutils import as_naive_utc, utcnow

logger = logging.getLogger("urlmonitor.timeline")


def validate_outcome(outcome: ProbeOutcome) -> None:
    """Raise InvalidOutcomeError unless reachability, status code and error agree."""
    code = outcome.status_code
    expected_up = code is not None and 200 <= code < 400
    if outcome.is_up != expected_up:
        if code is None:
            raise InvalidOutcomeError("An outcome without a status code cannot be up")
        raise InvalidOutcomeError(
            f"Status code {code} means is_up={expected_up}, got is_up={outcome.is_up}"
        )

    if outcome.error_message is not None and code is not None:
        raise InvalidOutcomeError("An outcome with an error message cannot carry a status code")

    if outcome.response_time_ms is not None and outcome.response_time_ms < 0:
        raise InvalidOutcomeError("Response time cannot be negative")


def compute_uptime(up_count: int, total: int) -> float:
    return (up_count / total * 100) if total > 0 else 0.0


def outcome_from_row(row: Outcome | ArchiveEntry) -> ProbeOutcome:
    return ProbeOutcome(
        id=row.id,
        target_id=row.target_id,
        status_code=row.status_code,
        status_text=row.status_text,
        response_time_ms=row.response_time_ms,
        is_up=bool(row.is_up),
        location=row.location,
        error_message=row.error_message,
        checked_at=row.checked_at,
    )


class TimelineStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, outcome: ProbeOutcome, commit: bool = True) -> ProbeOutcome:
        validate_outcome(outcome)
        row = Outcome(
            target_id=outcome.target_id,
            status_code=outcome.status_code,
            status_text=outcome.status_text,
            response_time_ms=outcome.response_time_ms,
            is_up=outcome.is_up,
            location=outcome.location,
            error_message=outcome.error_message,
            checked_at=as_naive_utc(outcome.checked_at),
        )
        self.session.add(row)
        if commit:
            await self.session.commit()
        else:
            await self.session.flush()
        logger.debug(
            f"Recorded outcome {row.id} for target {row.target_id}: "
            f"{'UP' if row.is_up else 'DOWN'} ({row.status_code})"
        )
        return outcome_from_row(row)

    async def latest(self, target_id: int) -> ProbeOutcome | None:
        result = await self.session.execute(
            select(Outcome)
            .where(Outcome.target_id == target_id)
            .order_by(Outcome.checked_at.desc(), Outcome.id.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return outcome_from_row(row) if row else None

    async def window(
        self, target_id: int, days: int = 7, now: datetime | None = None
    ) -> list[ProbeOutcome]:
        """Outcomes checked in ``[now - days, now]``, newest first."""
        now = as_naive_utc(now) if now else utcnow()
        result = await self.session.execute(
            select(Outcome)
            .where(
                Outcome.target_id == target_id,
                Outcome.checked_at >= now - timedelta(days=days),
                Outcome.checked_at <= now,
            )
            .order_by(Outcome.checked_at.desc(), Outcome.id.desc())
        )
        return [outcome_from_row(row) for row in result.scalars().all()]

    async def uptime_percentage(
        self, target_id: int, days: int = 7, now: datetime | None = None
    ) -> float:
        now = as_naive_utc(now) if now else utcnow()
        result = await self.session.execute(
            select(
                func.count(Outcome.id),
                func.sum(case((Outcome.is_up == True, 1), else_=0)),  # noqa: E712
            ).where(
                Outcome.target_id == target_id,
                Outcome.checked_at >= now - timedelta(days=days),
                Outcome.checked_at <= now,
            )
        )
        total, up_count = result.one()
        return compute_uptime(up_count or 0, total or 0)

    async def older_than(self, cutoff: datetime) -> list[ProbeOutcome]:
        """Outcomes with ``checked_at`` strictly before the cutoff, oldest first."""
        result = await self.session.execute(
            select(Outcome)
            .where(Outcome.checked_at < as_naive_utc(cutoff))
            .order_by(Outcome.checked_at.asc(), Outcome.id.asc())
        )
        return [outcome_from_row(row) for row in result.scalars().all()]

    async def count_older_than(self, cutoff: datetime) -> int:
        result = await self.session.execute(
            select(func.count(Outcome.id)).where(Outcome.checked_at < as_naive_utc(cutoff))
        )
        return result.scalar() or 0

    async def delete(self, outcome_id: int) -> bool:
        """Delete one outcome; False when no such row remained. Does not commit."""
        result = await self.session.execute(delete(Outcome).where(Outcome.id == outcome_id))
        return result.rowcount == 1

    async def insert_archive_entry(
        self, outcome: ProbeOutcome, archived_at: datetime | None = None
    ) -> ArchiveEntry:
        """Copy an outcome into the archive table. Flushes but does not commit."""
        entry = ArchiveEntry(
            target_id=outcome.target_id,
            status_code=outcome.status_code,
            status_text=outcome.status_text,
            response_time_ms=outcome.response_time_ms,
            is_up=outcome.is_up,
            location=outcome.location,
            error_message=outcome.error_message,
            checked_at=as_naive_utc(outcome.checked_at),
            archived_at=as_naive_utc(archived_at) if archived_at else utcnow(),
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def archive_entries(self, target_id: int) -> list[ArchiveEntry]:
        result = await self.session.execute(
            select(ArchiveEntry)
            .where(ArchiveEntry.target_id == target_id)
            .order_by(ArchiveEntry.checked_at.asc(), ArchiveEntry.id.asc())
        )
        return list(result.scalars().all())

    async def recent_archive_entries(self, target_id: int, limit: int = 100) -> list[ArchiveEntry]:
        result = await self.session.execute(
            select(ArchiveEntry)
            .where(ArchiveEntry.target_id == target_id)
            .order_by(ArchiveEntry.checked_at.desc(), ArchiveEntry.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_archive_entries(self) -> int:
        result = await self.session.execute(select(func.count(ArchiveEntry.id)))
        return result.scalar() or 0

"""
Fallback coordinator — decides which outcome of a logical check reaches the timeline.

A server-side outcome flagged ``needs_alternate_check`` is never written: the
target is handed back to the caller, which re-checks it from a browser and
submits that result through ``record_alternate``. Either way exactly one
outcome is recorded per completed check. A check whose alternate probe is never
submitted records nothing.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor.errors import TargetNotFoundError
from urlmonitor.ping import ProbeOutcome
from urlmonitor.registry import TargetRegistry
from urlmonitor.timeline import TimelineStore
from urlmonitor.timeutils import utcnow

logger = logging.getLogger("urlmonitor.fallback")

ALTERNATE_FAILURE_MESSAGE = "Alternate-path check failed: no response from browser probe"


class FallbackCoordinator:
    def __init__(self, session: AsyncSession, timeline: TimelineStore | None = None):
        self.session = session
        self.timeline = timeline or TimelineStore(session)

    async def submit(self, outcome: ProbeOutcome) -> bool:
        """Write a server-side outcome unless it awaits an alternate check. Returns whether written."""
        if outcome.needs_alternate_check:
            logger.info(
                f"Target {outcome.target_id}: server path inconclusive "
                f"({outcome.error_message}); awaiting alternate check"
            )
            return False
        await self.timeline.record(outcome)
        return True

    async def record_alternate(
        self,
        target_id: int,
        is_up: bool,
        response_time_ms: int | None = None,
        status_code: int | None = None,
        error_message: str | None = None,
    ) -> ProbeOutcome:
        """Validate and append the outcome of a browser-originated check."""
        if not await TargetRegistry(self.session).exists(target_id):
            raise TargetNotFoundError(target_id)

        if not is_up and status_code is None and not error_message:
            error_message = ALTERNATE_FAILURE_MESSAGE

        outcome = ProbeOutcome(
            target_id=target_id,
            is_up=is_up,
            checked_at=utcnow(),
            status_code=status_code,
            status_text=f"HTTP {status_code}" if status_code is not None else None,
            response_time_ms=response_time_ms,
            error_message=error_message or None,
        )
        recorded = await self.timeline.record(outcome)
        logger.info(
            f"Target {target_id}: alternate check recorded as "
            f"{'UP' if is_up else 'DOWN'}"
            + (f" - {error_message}" if error_message else "")
        )
        return recorded

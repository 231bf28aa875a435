"""
Sweep orchestrator — probes one or all targets and routes outcomes through the fallback gate.

Targets are probed one at a time so a sweep never holds more than one
outbound connection. A failure while probing or recording one target is
reported in that target's result and the sweep moves on.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor import ping
from urlmonitor.fallback import FallbackCoordinator
from urlmonitor.models.target import Target
from urlmonitor.ping import ProbeOutcome
from urlmonitor.registry import TargetRegistry
from urlmonitor.timeutils import utcnow

logger = logging.getLogger("urlmonitor.sweep")


@dataclass(frozen=True)
class TargetRef:
    """Detached copy of a target; survives session rollbacks mid-sweep."""

    id: int
    name: str
    address: str
    environment: str

    @classmethod
    def from_model(cls, target: Target) -> "TargetRef":
        return cls(
            id=target.id,
            name=target.name,
            address=target.address,
            environment=target.environment,
        )


ProbeFn = Callable[[TargetRef], Awaitable[ProbeOutcome]]


@dataclass
class SweepResult:
    target: TargetRef
    outcome: ProbeOutcome
    recorded: bool
    error: str | None = None

    @property
    def needs_alternate_check(self) -> bool:
        return self.outcome.needs_alternate_check and not self.recorded


class SweepOrchestrator:
    def __init__(self, session: AsyncSession, probe_fn: ProbeFn | None = None):
        self.session = session
        self.registry = TargetRegistry(session)
        self.coordinator = FallbackCoordinator(session)
        # None means ping.probe, looked up at call time so it can be patched
        self._probe_fn = probe_fn

    async def _probe(self, target: TargetRef) -> ProbeOutcome:
        if self._probe_fn is not None:
            return await self._probe_fn(target)
        return await ping.probe(target)

    async def _check(self, target: TargetRef) -> SweepResult:
        outcome = await self._probe(target)
        recorded = await self.coordinator.submit(outcome)
        return SweepResult(target=target, outcome=outcome, recorded=recorded)

    async def sweep_one(self, target_id: int) -> SweepResult:
        target = TargetRef.from_model(await self.registry.get(target_id))
        return await self._check(target)

    async def sweep_all(self) -> list[SweepResult]:
        targets = [TargetRef.from_model(t) for t in await self.registry.all_in_sweep_order()]

        results: list[SweepResult] = []
        for target in targets:
            try:
                results.append(await self._check(target))
            except Exception as e:
                logger.error(f"Sweep failed for target {target.id} ({target.address}): {e}")
                await self.session.rollback()
                results.append(await self._record_failure(target, e))

        pending = sum(1 for r in results if r.needs_alternate_check)
        logger.info(
            f"Sweep complete: {len(results)} target(s) checked, "
            f"{pending} awaiting alternate check"
        )
        return results

    async def _record_failure(self, target: TargetRef, exc: Exception) -> SweepResult:
        error = f"Check failed: {str(exc)[:200] or exc.__class__.__name__}"
        outcome = ProbeOutcome(
            target_id=target.id,
            is_up=False,
            checked_at=utcnow(),
            error_message=error,
        )
        recorded = False
        try:
            outcome = await self.coordinator.timeline.record(outcome)
            recorded = True
        except Exception as record_error:
            logger.error(f"Could not record failure for target {target.id}: {record_error}")
            await self.session.rollback()

        return SweepResult(target=target, outcome=outcome, recorded=recorded, error=error)

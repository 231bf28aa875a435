"""Tests for outcome invariants, the timeline store and uptime math."""
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor.errors import InvalidOutcomeError
from urlmonitor.models import Outcome
from urlmonitor.ping import ProbeOutcome
from urlmonitor.registry import TargetRegistry
from urlmonitor.timeline import TimelineStore, compute_uptime, validate_outcome
from urlmonitor.timeutils import utcnow


def outcome(target_id: int = 1, **fields) -> ProbeOutcome:
    fields.setdefault("checked_at", utcnow())
    fields.setdefault("status_code", 200)
    fields.setdefault("is_up", True)
    return ProbeOutcome(target_id=target_id, **fields)


@pytest.mark.parametrize("code", [200, 204, 301, 302, 399])
def test_validate_accepts_reachable_codes(code: int):
    validate_outcome(outcome(status_code=code, is_up=True))


@pytest.mark.parametrize("code", [400, 404, 500, 503])
def test_validate_accepts_unreachable_codes(code: int):
    validate_outcome(outcome(status_code=code, is_up=False))


def test_validate_accepts_failure_without_code():
    validate_outcome(outcome(status_code=None, is_up=False, error_message="Connection failed"))


def test_validate_rejects_up_without_code():
    with pytest.raises(InvalidOutcomeError):
        validate_outcome(outcome(status_code=None, is_up=True))


def test_validate_rejects_up_with_server_error():
    with pytest.raises(InvalidOutcomeError):
        validate_outcome(outcome(status_code=500, is_up=True))


def test_validate_rejects_down_with_ok_code():
    with pytest.raises(InvalidOutcomeError):
        validate_outcome(outcome(status_code=200, is_up=False))


def test_validate_rejects_error_with_code():
    with pytest.raises(InvalidOutcomeError):
        validate_outcome(outcome(status_code=404, is_up=False, error_message="oops"))


@pytest.mark.parametrize("code", [999, 600, 103])
def test_validate_accepts_nonstandard_codes_as_down(code: int):
    validate_outcome(outcome(status_code=code, is_up=False))
    with pytest.raises(InvalidOutcomeError):
        validate_outcome(outcome(status_code=code, is_up=True))


def test_compute_uptime():
    assert compute_uptime(0, 0) == 0
    assert compute_uptime(3, 4) == pytest.approx(75.0)
    assert compute_uptime(1, 3) == pytest.approx(33.333, rel=1e-3)


async def _target(db: AsyncSession, address: str = "https://example.com") -> int:
    target = await TargetRegistry(db).create(address, "Example")
    return target.id


@pytest.mark.asyncio
async def test_record_and_latest(db: AsyncSession):
    target_id = await _target(db)
    timeline = TimelineStore(db)
    now = utcnow()

    await timeline.record(outcome(target_id, checked_at=now - timedelta(minutes=5)))
    # Recorded later but checked earlier: timeline order follows checked_at
    await timeline.record(outcome(
        target_id, checked_at=now - timedelta(minutes=10), status_code=500, is_up=False
    ))

    latest = await timeline.latest(target_id)
    assert latest.status_code == 200
    assert latest.id is not None


@pytest.mark.asyncio
async def test_latest_without_outcomes(db: AsyncSession):
    target_id = await _target(db)
    assert await TimelineStore(db).latest(target_id) is None


@pytest.mark.asyncio
async def test_record_rejects_invalid_outcome(db: AsyncSession):
    target_id = await _target(db)
    with pytest.raises(InvalidOutcomeError):
        await TimelineStore(db).record(outcome(target_id, status_code=None, is_up=True))

    count = await db.execute(select(func.count(Outcome.id)))
    assert count.scalar() == 0


@pytest.mark.asyncio
async def test_window_is_seven_days_newest_first(db: AsyncSession):
    target_id = await _target(db)
    timeline = TimelineStore(db)
    now = utcnow()

    for hours in (1, 30, 24 * 6):
        await timeline.record(outcome(target_id, checked_at=now - timedelta(hours=hours)))
    await timeline.record(outcome(target_id, checked_at=now - timedelta(days=8)))

    window = await timeline.window(target_id, days=7, now=now)
    assert len(window) == 3
    assert [o.checked_at for o in window] == sorted((o.checked_at for o in window), reverse=True)


@pytest.mark.asyncio
async def test_uptime_percentage(db: AsyncSession):
    target_id = await _target(db)
    timeline = TimelineStore(db)
    now = utcnow()

    assert await timeline.uptime_percentage(target_id, now=now) == 0

    for minutes, code in ((1, 200), (2, 302), (3, 500), (4, 200)):
        await timeline.record(outcome(
            target_id,
            checked_at=now - timedelta(minutes=minutes),
            status_code=code,
            is_up=200 <= code < 400,
        ))
    # Outside the window, ignored
    await timeline.record(outcome(
        target_id, checked_at=now - timedelta(days=9), status_code=500, is_up=False
    ))

    assert await timeline.uptime_percentage(target_id, now=now) == pytest.approx(75.0)


@pytest.mark.asyncio
async def test_outcomes_are_per_target(db: AsyncSession):
    first = await _target(db, "https://one.example.com")
    second = await _target(db, "https://two.example.com")
    timeline = TimelineStore(db)

    await timeline.record(outcome(first))
    assert await timeline.latest(second) is None
    assert len(await timeline.window(first)) == 1


@pytest.mark.asyncio
async def test_deleting_target_removes_its_outcomes(db: AsyncSession):
    kept = await _target(db, "https://one.example.com")
    removed = await _target(db, "https://two.example.com")
    timeline = TimelineStore(db)
    for _ in range(3):
        await timeline.record(outcome(removed))
    await timeline.record(outcome(kept))

    await TargetRegistry(db).delete(removed)

    result = await db.execute(
        select(Outcome.target_id, func.count(Outcome.id)).group_by(Outcome.target_id)
    )
    assert result.all() == [(kept, 1)]

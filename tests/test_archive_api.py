"""Tests for the archive and cron endpoints."""
from datetime import timedelta
from unittest.mock import patch

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from tests.conftest import make_outcome, test_session_factory
from urlmonitor import auth
from urlmonitor.models import ArchiveEntry, Outcome, Target
from urlmonitor.timeline import TimelineStore
from urlmonitor.timeutils import utcnow


async def _seed_history(*ages: timedelta) -> int:
    async with test_session_factory() as session:
        target = Target(address="https://portal.example.edu", name="Portal", environment="production")
        session.add(target)
        await session.commit()
        timeline = TimelineStore(session)
        for age in ages:
            await timeline.record(make_outcome(target, checked_at=utcnow() - age))
        return target.id


async def _count(model) -> int:
    async with test_session_factory() as session:
        return (await session.execute(select(func.count(model.id)))).scalar()


@pytest.mark.asyncio
async def test_archive_status(client: AsyncClient):
    await _seed_history(timedelta(days=8), timedelta(days=1))

    response = await client.get("/api/archive")

    assert response.status_code == 200
    assert response.json() == {"records_to_archive": 1, "total_archived": 0}


@pytest.mark.asyncio
async def test_run_archive(authenticated_client: AsyncClient):
    await _seed_history(timedelta(days=8), timedelta(days=9), timedelta(hours=3))

    response = await authenticated_client.post("/api/archive")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["archived"] == 2
    assert data["deleted"] == 2
    assert await _count(Outcome) == 1
    assert await _count(ArchiveEntry) == 2


@pytest.mark.asyncio
async def test_run_archive_needs_session_or_cron_token(client: AsyncClient):
    await _seed_history(timedelta(days=8))

    with patch.object(auth.settings, "cron_secret", "s3cret"):
        response = await client.post("/api/archive")
        assert response.status_code == 401

        response = await client.post(
            "/api/archive", headers={"Authorization": "Bearer s3cret"}
        )
        assert response.status_code == 200
        assert response.json()["archived"] == 1


@pytest.mark.asyncio
async def test_target_archive(authenticated_client: AsyncClient):
    target_id = await _seed_history(timedelta(days=8), timedelta(days=10))
    await authenticated_client.post("/api/archive")

    response = await authenticated_client.get(f"/api/targets/{target_id}/archive")

    assert response.status_code == 200
    entries = response.json()
    assert len(entries) == 2
    assert entries[0]["checked_at"] > entries[1]["checked_at"]
    assert "archived_at" in entries[0]


@pytest.mark.asyncio
async def test_export_empty_archive(authenticated_client: AsyncClient):
    await _seed_history(timedelta(days=1))

    response = await authenticated_client.get("/api/archive/export")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_export_archive(authenticated_client: AsyncClient):
    await _seed_history(timedelta(days=8))
    await authenticated_client.post("/api/archive")

    response = await authenticated_client.get("/api/archive/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="url-status-archive-')
    assert disposition.endswith('.txt"')
    assert response.text.startswith("URL Status Archive\n")
    assert "URL: Portal" in response.text


@pytest.mark.asyncio
async def test_export_requires_admin(client: AsyncClient):
    response = await client.get("/api/archive/export")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_cron_sweeps(client: AsyncClient, probe_results):
    await _seed_history()

    response = await client.post("/api/cron")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["sweep"]["checked"] == 1
    assert await _count(Outcome) == 1


@pytest.mark.asyncio
async def test_cron_forced_archive(client: AsyncClient, probe_results):
    await _seed_history(timedelta(days=8))

    response = await client.get("/api/cron", params={"archive": "true"})

    assert response.status_code == 200
    assert response.json()["archive"]["archived"] == 1
    assert await _count(ArchiveEntry) == 1


@pytest.mark.asyncio
async def test_cron_requires_token_when_configured(client: AsyncClient, probe_results):
    with patch.object(auth.settings, "cron_secret", "s3cret"):
        response = await client.post("/api/cron")
        assert response.status_code == 401

        response = await client.post("/api/cron", headers={"Authorization": "Bearer wrong"})
        assert response.status_code == 401

        response = await client.post("/api/cron", headers={"Authorization": "Bearer s3cret"})
        assert response.status_code == 200

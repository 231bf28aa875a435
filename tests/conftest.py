import sys
import os

# Ensure src directory is in Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest
import pytest_asyncio
from unittest.mock import patch
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from urlmonitor.auth import hash_password
from urlmonitor.database import Base, get_db, get_session_factory
from urlmonitor.main import app
from urlmonitor.models import AdminUser
from urlmonitor.ping import ProbeOutcome
from urlmonitor.timeutils import utcnow


# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)


@event.listens_for(test_engine.sync_engine, "connect")
def enable_foreign_keys(dbapi_connection, connection_record):
    # Outcomes are removed with their target by ON DELETE CASCADE
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "testpassword123"


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_db():
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_session_factory] = lambda: test_session_factory


@pytest_asyncio.fixture
async def db():
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def authenticated_client(client: AsyncClient):
    """Seed an admin and return a client holding its session cookie."""
    async with test_session_factory() as session:
        session.add(AdminUser(username=ADMIN_USERNAME, password_hash=hash_password(ADMIN_PASSWORD)))
        await session.commit()

    response = await client.post("/auth/login", data={
        "username": ADMIN_USERNAME,
        "password": ADMIN_PASSWORD,
    })
    assert response.status_code == 200

    client.cookies.update(response.cookies)
    return client


def make_outcome(target, status_code: int | None = 200, **overrides) -> ProbeOutcome:
    """Outcome a probe of ``target`` would produce for a status code; None means timed out."""
    if status_code is None:
        fields = dict(
            is_up=False,
            response_time_ms=10000,
            error_message="Request timed out after 10s (aborted)",
            needs_alternate_check=True,
        )
    else:
        fields = dict(
            status_code=status_code,
            status_text=f"HTTP {status_code}",
            is_up=200 <= status_code < 400,
            response_time_ms=42,
        )
    fields["checked_at"] = utcnow()
    fields.update(overrides)
    return ProbeOutcome(target_id=target.id, **fields)


@pytest.fixture
def probe_results():
    """Replace the probe engine. Map addresses to a status code, None (timeout) or an exception."""
    responses: dict = {}

    async def fake_probe(target, timeout=None):
        response = responses.get(target.address, 200)
        if isinstance(response, Exception):
            raise response
        return make_outcome(target, response)

    with patch("urlmonitor.ping.probe", new=fake_probe):
        yield responses

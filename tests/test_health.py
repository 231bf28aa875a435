import pytest
from httpx import AsyncClient, ASGITransport
from urlmonitor.main import app


@pytest.mark.asyncio
async def test_health_check():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app"] == "URL Monitor"
    assert "version" in data


@pytest.mark.asyncio
async def test_status_page():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/")
    assert response.status_code == 200
    assert "URL Monitor" in response.text
    assert "/static/alternate_check.js" in response.text


@pytest.mark.asyncio
async def test_login_page():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/login")
    assert response.status_code == 200
    assert "Log in" in response.text


@pytest.mark.asyncio
async def test_alternate_check_script_served():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/static/alternate_check.js")
    assert response.status_code == 200
    assert "alternate-check-result" in response.text


@pytest.mark.asyncio
async def test_admin_page_requires_session(client: AsyncClient):
    response = await client.get("/admin", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_admin_page_with_session(authenticated_client: AsyncClient):
    response = await authenticated_client.get("/admin")
    assert response.status_code == 200
    assert "Signed in as admin" in response.text


@pytest.mark.asyncio
async def test_pages_render_target_fields_as_text(authenticated_client: AsyncClient):
    """Target names and addresses are user input; the tables never parse them as markup."""
    for path in ("/", "/admin"):
        response = await authenticated_client.get(path)
        assert response.status_code == 200
        assert "innerHTML" not in response.text
        assert "textContent" in response.text

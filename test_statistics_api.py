import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from unittest.mock import AsyncMock, patch

from stats_keeper.core.errors import internal
from stats_keeper.db.database import get_async_session
from stats_keeper.main import app
from stats_keeper.services.statistic_service import StatisticService


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def lenient_client(session_factory):
    """Клиент, который получает ответ 500 вместо проброса исключения приложения"""
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


async def create_counter(client, name="e1", user_id="u1", count=123):
    response = await client.put("/api/v1/statistics", json={
        "name": name,
        "user_id": user_id,
        "component": {"kind": "counter", "count": count},
    })
    assert response.status_code == 200
    return response.json()


class TestStatisticsApi:
    """Тесты HTTP эндпоинтов статистики"""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert "is running" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_create_and_get(self, client):
        created = await create_counter(client)

        assert created["id"]
        assert created["name"] == "e1"
        assert created["user_id"] == "u1"
        assert created["component"] == {"kind": "counter", "count": 123}

        response = await client.get(f"/api/v1/statistics/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"user_id": "u1", "component": {"kind": "counter", "count": 1}},
        {"name": "e1", "component": {"kind": "counter", "count": 1}},
        {"name": "e1", "user_id": "u1"},
    ])
    async def test_create_requires_fields(self, client, body):
        response = await client.put("/api/v1/statistics", json=body)

        assert response.status_code == 400
        assert response.json()["message"] == "name, user_id and component cannot be empty"

    @pytest.mark.asyncio
    async def test_create_invalid_body(self, client):
        response = await client.put(
            "/api/v1/statistics", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "invalid json request body"

    @pytest.mark.asyncio
    async def test_get_not_found(self, client):
        response = await client.get("/api/v1/statistics/missing")

        assert response.status_code == 404
        assert response.json() == {"message": "statistic not found", "error": "NOT_FOUND"}

    @pytest.mark.asyncio
    async def test_list_requires_user_id(self, client):
        response = await client.get("/api/v1/statistics")

        assert response.status_code == 400
        assert response.json()["message"] == "user_id cannot be empty"

    @pytest.mark.asyncio
    async def test_list_empty(self, client):
        response = await client.get("/api/v1/statistics", params={"user_id": "u-none"})

        assert response.status_code == 200
        assert response.json() == {"entities": []}

    @pytest.mark.asyncio
    async def test_list_isolated_by_user(self, client):
        first = await create_counter(client, name="a1", user_id="user-a")
        second = await create_counter(client, name="a2", user_id="user-a")
        await create_counter(client, name="b1", user_id="user-b")

        response = await client.get("/api/v1/statistics", params={"user_id": "user-a"})

        ids = sorted(entity["id"] for entity in response.json()["entities"])
        assert ids == sorted([first["id"], second["id"]])

    @pytest.mark.asyncio
    async def test_update_success(self, client):
        created = await create_counter(client, count=3)

        response = await client.post("/api/v1/statistics/update", json={
            "fields": {"paths": ["name", "counter"]},
            "values": {"id": created["id"], "name": "e1-updated", "component": {"kind": "counter", "count": 4}},
        })

        assert response.status_code == 200
        assert response.json() == {
            "id": created["id"],
            "name": "e1-updated",
            "user_id": "u1",
            "component": {"kind": "counter", "count": 4},
        }

    @pytest.mark.asyncio
    async def test_update_kind_change(self, client):
        created = await create_counter(client)

        response = await client.post("/api/v1/statistics/update", json={
            "fields": {"paths": ["date"]},
            "values": {"id": created["id"], "component": {"kind": "date", "timestamps": []}},
        })

        assert response.status_code == 400
        assert response.json() == {
            "message": "component cannot be changed from COUNTER to DATE",
            "error": "INVALID_ARGUMENT",
        }

    @pytest.mark.asyncio
    async def test_update_no_update(self, client):
        created = await create_counter(client)

        response = await client.post("/api/v1/statistics/update", json={
            "fields": {"paths": ["invalid1", "invalid2"]},
            "values": {"id": created["id"]},
        })

        assert response.status_code == 400
        assert response.json()["error"] == "NO_UPDATE"

    @pytest.mark.asyncio
    async def test_update_requires_paths_and_values(self, client):
        response = await client.post("/api/v1/statistics/update", json={"fields": {"paths": []}, "values": {}})

        assert response.status_code == 400
        assert response.json()["message"] == "fields.paths and values must be non-empty or non-null"

    @pytest.mark.asyncio
    async def test_delete(self, client):
        created = await create_counter(client)

        response = await client.delete(f"/api/v1/statistics/{created['id']}")
        assert response.status_code == 200
        assert response.json() == {}

        response = await client.get(f"/api/v1/statistics/{created['id']}")
        assert response.status_code == 404

        response = await client.delete(f"/api/v1/statistics/{created['id']}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_internal_error_is_500(self, client):
        with patch.object(StatisticService, "get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = internal("error getting statistic from database: %s", "connection refused")

            response = await client.get("/api/v1/statistics/id-1")

        assert response.status_code == 500
        assert response.json()["error"] == "INTERNAL"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_json_500(self, lenient_client):
        with patch.object(StatisticService, "get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = ValueError("boom")

            response = await lenient_client.get("/api/v1/statistics/id-1")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"message": "internal server error", "error": "INTERNAL"}

    @pytest.mark.asyncio
    async def test_method_not_allowed(self, client):
        response = await client.patch("/api/v1/statistics")

        assert response.status_code == 405

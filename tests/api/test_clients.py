"""Tests for clients API endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_and_get_client(api_client: AsyncClient) -> None:
    """Create client and fetch it by ID."""
    create_response = await api_client.post(
        "/api/clients",
        json={"name": "  Alice Walker  ", "tags": ["design", "retainer"]},
    )
    assert create_response.status_code == 201
    created = create_response.json()
    assert created["name"] == "Alice Walker"
    assert created["status"] == "active"
    assert created["metrics"]["tasks_pending"] == 0
    assert created["profitability"] is None

    get_response = await api_client.get(f"/api/clients/{created['id']}")
    assert get_response.status_code == 200
    fetched = get_response.json()
    assert fetched["id"] == created["id"]
    assert fetched["tags"] == ["design", "retainer"]


@pytest.mark.asyncio
async def test_create_client_with_budget_creates_profitability(
    api_client: AsyncClient,
) -> None:
    """Budget 1000 at 100 per hour gives a 10 hour target."""
    response = await api_client.post(
        "/api/clients",
        json={"name": "Northwind", "hourly_rate": 100, "monthly_budget": 1000},
    )

    assert response.status_code == 201
    profitability = response.json()["profitability"]
    assert profitability["target_hours"] == 10.0
    assert profitability["remaining_hours"] == 10.0
    assert profitability["revenue"] == 1000.0
    assert profitability["profit"] == 0.0
    assert profitability["profitability"] == 0.0


@pytest.mark.asyncio
async def test_create_client_short_name_is_bad_request(api_client: AsyncClient) -> None:
    response = await api_client.post("/api/clients", json={"name": " X "})

    assert response.status_code == 400
    assert "at least 2" in response.json()["detail"]


@pytest.mark.asyncio
async def test_create_client_budget_without_rate_is_bad_request(
    api_client: AsyncClient,
) -> None:
    response = await api_client.post(
        "/api/clients", json={"name": "Globex", "monthly_budget": 500}
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_requests_without_user_header_are_unauthorized(
    api_client: AsyncClient,
) -> None:
    """The gateway header is mandatory."""
    missing = await api_client.get("/api/clients", headers={"X-User-Id": ""})
    malformed = await api_client.get("/api/clients", headers={"X-User-Id": "abc"})

    assert missing.status_code == 401
    assert malformed.status_code == 401


@pytest.mark.asyncio
async def test_list_clients_with_search_and_pagination(api_client: AsyncClient) -> None:
    """Search client list and paginate results."""
    await api_client.post("/api/clients", json={"name": "Alice Walker"})
    await api_client.post("/api/clients", json={"name": "Alicia Stone"})
    await api_client.post("/api/clients", json={"name": "Bob Summers"})

    response = await api_client.get("/api/clients", params={"search": "ali", "limit": 1})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert len(data["items"]) == 1
    assert data["items"][0]["name"] in {"Alice Walker", "Alicia Stone"}


@pytest.mark.asyncio
async def test_clients_are_scoped_to_user(api_client: AsyncClient) -> None:
    """Another user's client is invisible."""
    created = (await api_client.post("/api/clients", json={"name": "Private Co"})).json()

    response = await api_client.get(
        f"/api/clients/{created['id']}", headers={"X-User-Id": "2"}
    )
    listing = await api_client.get("/api/clients", headers={"X-User-Id": "2"})

    assert response.status_code == 404
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_update_client(api_client: AsyncClient) -> None:
    """Partially update display attributes."""
    created = (await api_client.post("/api/clients", json={"name": "Acme"})).json()

    response = await api_client.patch(
        f"/api/clients/{created['id']}",
        json={"name": "Acme Corp", "status": "inactive", "notes": "Paused until Q3"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Acme Corp"
    assert data["status"] == "inactive"
    assert data["notes"] == "Paused until Q3"


@pytest.mark.asyncio
async def test_update_missing_client_is_not_found(api_client: AsyncClient) -> None:
    response = await api_client.patch("/api/clients/999", json={"name": "Nobody"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Client not found"


@pytest.mark.asyncio
async def test_delete_client_removes_tasks_and_profitability(
    api_client: AsyncClient,
) -> None:
    """Deleting a client reports its tasks and leaves nothing behind."""
    created = (
        await api_client.post(
            "/api/clients", json={"name": "Initech", "hourly_rate": 75}
        )
    ).json()
    client_id = created["id"]
    for title in ("One", "Two"):
        await api_client.post("/api/tasks", json={"title": title, "client_id": client_id})

    response = await api_client.delete(f"/api/clients/{client_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["tasks_count"] == 2
    assert data["profitability_deleted"] is True
    assert data["verified"] is True

    assert (await api_client.get(f"/api/clients/{client_id}")).status_code == 404
    assert (await api_client.get(f"/api/profitability/{client_id}")).status_code == 404
    tasks = await api_client.get("/api/tasks", params={"client_id": client_id})
    assert tasks.json()["total"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "figures",
    [
        {"hourly_rate": "1e30"},
        {"hourly_rate": "100", "monthly_budget": "1e30"},
        {"hourly_rate": "100", "target_hours": "1e7"},
    ],
)
async def test_create_client_with_oversized_figures_is_bad_request(
    api_client: AsyncClient, figures: dict
) -> None:
    response = await api_client.post("/api/clients", json={"name": "Big", **figures})

    assert response.status_code == 400
    listing = await api_client.get("/api/clients")
    assert listing.json()["total"] == 0

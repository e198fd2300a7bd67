"""Tests for client objectives API endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


@pytest.fixture
def objective_payload() -> dict:
    return {
        "title": "Grow newsletter",
        "target_value": 200,
        "current_value": 50,
        "unit": "subscribers",
        "due_date": "2026-12-31",
    }


async def _create_client(api_client: AsyncClient) -> int:
    response = await api_client.post("/api/clients", json={"name": "Stark Media"})
    return response.json()["id"]


@pytest.mark.asyncio
async def test_create_objective_updates_client_counters(
    api_client: AsyncClient, objective_payload: dict
) -> None:
    client_id = await _create_client(api_client)

    response = await api_client.post(
        "/api/objectives", json={**objective_payload, "client_id": client_id}
    )

    assert response.status_code == 201
    data = response.json()
    assert data["progress"] == 25
    assert data["is_completed"] is False

    client = (await api_client.get(f"/api/clients/{client_id}")).json()
    assert client["objectives_count"] == 1
    assert client["objectives_pending"] == 1


@pytest.mark.asyncio
async def test_create_objective_for_unknown_client_is_not_found(
    api_client: AsyncClient, objective_payload: dict
) -> None:
    response = await api_client.post(
        "/api/objectives", json={**objective_payload, "client_id": 999}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_complete_objective_moves_counters(
    api_client: AsyncClient, objective_payload: dict
) -> None:
    """Completing an objective moves it from pending to completed."""
    client_id = await _create_client(api_client)
    objective = (
        await api_client.post(
            "/api/objectives", json={**objective_payload, "client_id": client_id}
        )
    ).json()

    response = await api_client.patch(
        f"/api/objectives/{objective['id']}",
        json={"current_value": 250, "is_completed": True},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["progress"] == 100
    assert data["completed_at"] is not None

    client = (await api_client.get(f"/api/clients/{client_id}")).json()
    assert client["objectives_completed"] == 1
    assert client["objectives_pending"] == 0


@pytest.mark.asyncio
async def test_list_objectives_by_due_date(
    api_client: AsyncClient, objective_payload: dict
) -> None:
    client_id = await _create_client(api_client)
    for title, due in (("Later", "2027-03-01"), ("Sooner", "2026-11-15")):
        await api_client.post(
            "/api/objectives",
            json={**objective_payload, "client_id": client_id, "title": title, "due_date": due},
        )

    response = await api_client.get("/api/objectives", params={"client_id": client_id})

    assert response.status_code == 200
    assert [item["title"] for item in response.json()["items"]] == ["Sooner", "Later"]


@pytest.mark.asyncio
async def test_delete_objective(api_client: AsyncClient, objective_payload: dict) -> None:
    client_id = await _create_client(api_client)
    objective = (
        await api_client.post(
            "/api/objectives", json={**objective_payload, "client_id": client_id}
        )
    ).json()

    response = await api_client.delete(f"/api/objectives/{objective['id']}")

    assert response.status_code == 204
    assert (await api_client.get(f"/api/objectives/{objective['id']}")).status_code == 404
    client = (await api_client.get(f"/api/clients/{client_id}")).json()
    assert client["objectives_count"] == 0
    assert client["objectives_pending"] == 0

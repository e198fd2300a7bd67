"""Tests for gamification API endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


@pytest.fixture
def badge_payload() -> dict:
    return {
        "name": "Closer",
        "description": "Complete ten tasks",
        "category": "tasks",
        "reward_experience": 150,
        "reward_points": 40,
    }


@pytest.mark.asyncio
async def test_progress_starts_at_level_one(api_client: AsyncClient) -> None:
    response = await api_client.get("/api/gamification/progress")

    assert response.status_code == 200
    assert response.json() == {
        "user_id": 1,
        "points": 0,
        "experience": 0,
        "level": 1,
        "next_level_experience": 100,
    }


@pytest.mark.asyncio
async def test_create_badge_and_reject_duplicate(
    api_client: AsyncClient, badge_payload: dict
) -> None:
    created = await api_client.post("/api/gamification/badges", json=badge_payload)
    duplicate = await api_client.post("/api/gamification/badges", json=badge_payload)

    assert created.status_code == 201
    assert created.json()["rarity"] == "common"
    assert duplicate.status_code == 409

    catalogue = await api_client.get("/api/gamification/badges")
    assert [badge["name"] for badge in catalogue.json()] == ["Closer"]


@pytest.mark.asyncio
async def test_award_badge_credits_rewards_once(
    api_client: AsyncClient, badge_payload: dict
) -> None:
    """A badge is earned once and its rewards count toward the level."""
    badge = (await api_client.post("/api/gamification/badges", json=badge_payload)).json()

    awarded = await api_client.post(f"/api/gamification/badges/{badge['id']}/award")
    again = await api_client.post(f"/api/gamification/badges/{badge['id']}/award")

    assert awarded.status_code == 201
    assert awarded.json()["badge"]["name"] == "Closer"
    assert again.status_code == 409

    progress = (await api_client.get("/api/gamification/progress")).json()
    assert progress["points"] == 40
    assert progress["experience"] == 150
    assert progress["level"] == 2

    earned = await api_client.get("/api/gamification/badges/earned")
    assert [item["badge"]["id"] for item in earned.json()] == [badge["id"]]


@pytest.mark.asyncio
async def test_award_unknown_badge_is_not_found(api_client: AsyncClient) -> None:
    response = await api_client.post("/api/gamification/badges/999/award")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_badges_carry_earned_and_display_status(
    api_client: AsyncClient, badge_payload: dict
) -> None:
    """The catalogue marks which badges the caller holds and shows."""
    closer = (await api_client.post("/api/gamification/badges", json=badge_payload)).json()
    await api_client.post(
        "/api/gamification/badges", json={**badge_payload, "name": "Marathon"}
    )
    await api_client.post(f"/api/gamification/badges/{closer['id']}/award")

    catalogue = (await api_client.get("/api/gamification/badges")).json()

    status_by_name = {
        badge["name"]: (badge["earned"], badge["displayed"]) for badge in catalogue
    }
    assert status_by_name == {"Closer": (True, True), "Marathon": (False, False)}
    assert next(b for b in catalogue if b["name"] == "Closer")["earned_at"] is not None


@pytest.mark.asyncio
async def test_toggle_badge_display(api_client: AsyncClient, badge_payload: dict) -> None:
    badge = (await api_client.post("/api/gamification/badges", json=badge_payload)).json()
    await api_client.post(f"/api/gamification/badges/{badge['id']}/award")

    hidden = await api_client.put(
        f"/api/gamification/badges/{badge['id']}/display", json={"displayed": False}
    )

    assert hidden.status_code == 200
    assert hidden.json()["displayed"] is False
    earned = (await api_client.get("/api/gamification/badges/earned")).json()
    assert earned[0]["displayed"] is False
    catalogue = (await api_client.get("/api/gamification/badges")).json()
    assert catalogue[0]["earned"] is True
    assert catalogue[0]["displayed"] is False


@pytest.mark.asyncio
async def test_toggle_display_of_unearned_badge_is_not_found(
    api_client: AsyncClient, badge_payload: dict
) -> None:
    badge = (await api_client.post("/api/gamification/badges", json=badge_payload)).json()

    response = await api_client.put(
        f"/api/gamification/badges/{badge['id']}/display", json={"displayed": False}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_achievements_catalogue(api_client: AsyncClient) -> None:
    payload = {
        "name": "Ten Down",
        "description": "Complete ten tasks",
        "icon": "check-circle",
        "requirement_type": "tasks_completed",
        "requirement_target": 10,
        "reward_experience": 200,
    }

    created = await api_client.post("/api/gamification/achievements", json=payload)
    duplicate = await api_client.post("/api/gamification/achievements", json=payload)
    missing_badge = await api_client.post(
        "/api/gamification/achievements",
        json={**payload, "name": "Badge Hunter", "reward_badge_id": 999},
    )

    assert created.status_code == 201
    assert created.json()["kind"] == "progression"
    assert created.json()["is_secret"] is False
    assert duplicate.status_code == 409
    assert missing_badge.status_code == 404

    listing = (await api_client.get("/api/gamification/achievements")).json()
    assert [item["name"] for item in listing] == ["Ten Down"]


@pytest.mark.asyncio
async def test_activity_history_follows_task_completion(api_client: AsyncClient) -> None:
    """Completing a task shows up in the history, newest first."""
    task = (await api_client.post("/api/tasks", json={"title": "Write brief"})).json()
    await api_client.post(f"/api/tasks/{task['id']}/complete")
    logged = await api_client.post(
        "/api/gamification/activity",
        json={"type": "streak", "description": "Three day streak", "points": 5},
    )

    assert logged.status_code == 201
    assert logged.json()["points_earned"] == 5

    history = (await api_client.get("/api/gamification/activity")).json()
    assert [item["type"] for item in history] == ["streak", "task_completed"]
    assert history[1]["task_id"] == task["id"]

    progress = (await api_client.get("/api/gamification/progress")).json()
    assert progress["points"] == 10 + 5


@pytest.mark.asyncio
async def test_activity_history_is_limited_and_scoped(api_client: AsyncClient) -> None:
    for index in range(22):
        await api_client.post(
            "/api/gamification/activity",
            json={"type": "custom", "description": f"Entry {index}"},
        )

    history = (await api_client.get("/api/gamification/activity")).json()
    other_user = await api_client.get(
        "/api/gamification/activity", headers={"X-User-Id": "2"}
    )

    assert len(history) == 20
    assert history[0]["description"] == "Entry 21"
    assert other_user.json() == []


@pytest.mark.asyncio
async def test_activity_with_negative_points_is_rejected(api_client: AsyncClient) -> None:
    response = await api_client.post(
        "/api/gamification/activity",
        json={"type": "custom", "description": "Oops", "points": -1},
    )

    assert response.status_code == 422
    assert (await api_client.get("/api/gamification/activity")).json() == []

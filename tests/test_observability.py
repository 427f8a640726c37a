import pytest
from httpx import ASGITransport, AsyncClient

from smart_rewards_api.core.settings import settings
from smart_rewards_api.observability.rewards import RewardsObservabilityStore, get_rewards_store


def test_store_accumulates_and_resets() -> None:
    store = RewardsObservabilityStore()
    store.record_points_awarded("SIGNUP", 2)
    store.record_points_awarded("follow_business", 1)
    store.record_badge_awarded("Welcome Aboard")
    store.record_badge_check_failure()
    store.record_redemption("redeemed")
    store.record_mukando_event("points_contributed", 40)

    snapshot = store.snapshot().as_dict()
    assert snapshot["points"] == {
        "awards": 2,
        "total_points": 3,
        "activity:signup": 1,
        "activity:follow_business": 1,
    }
    assert snapshot["badges"] == {"awarded": 1, "badge:Welcome Aboard": 1, "check_failures": 1}
    assert snapshot["redemptions"] == {"redeemed": 1}
    assert snapshot["mukando"] == {"points_contributed": 40}

    store.reset()
    assert store.snapshot().as_dict() == {"points": {}, "badges": {}, "redemptions": {}, "mukando": {}}


@pytest.mark.asyncio
async def test_rewards_snapshot_endpoint(app_with_db) -> None:
    app, _ = app_with_db
    get_rewards_store().record_redemption("verified")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/v1/observability/rewards")

    assert response.status_code == 200
    assert response.json()["redemptions"] == {"verified": 1}


@pytest.mark.asyncio
async def test_prometheus_endpoint_formats_counters(app_with_db) -> None:
    app, _ = app_with_db
    store = get_rewards_store()
    store.record_points_awarded("signup", 2)
    store.record_mukando_event("joined")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/v1/observability/prometheus")

    assert response.status_code == 200
    body = response.text
    assert "# TYPE smart_rewards_points_awards_total gauge" in body
    assert "smart_rewards_points_awarded_total 2" in body
    assert 'smart_rewards_points_activity_total{activity="signup"} 1' in body
    assert "smart_rewards_badges_awarded_total 0" in body
    assert 'smart_rewards_mukando_events_total{event="joined"} 1' in body


@pytest.mark.asyncio
async def test_metrics_api_key_is_enforced_when_configured(app_with_db, monkeypatch) -> None:
    app, _ = app_with_db
    monkeypatch.setattr(settings, "metrics_api_key", "letmein")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        denied = await client.get("/api/v1/observability/rewards")
        wrong = await client.get("/api/v1/observability/prometheus", headers={"X-API-Key": "nope"})
        allowed = await client.get("/api/v1/observability/rewards", headers={"X-API-Key": "letmein"})

    assert denied.status_code == 401
    assert wrong.status_code == 401
    assert allowed.status_code == 200

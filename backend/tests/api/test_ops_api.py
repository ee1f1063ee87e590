import pytest

from app.settings import settings


@pytest.mark.asyncio
async def test_health_endpoints(api_client):
    live = await api_client.get("/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"

    ready = await api_client.get("/health/ready")
    assert ready.status_code == 200
    checks = ready.json()["checks"]
    assert checks["redis"]["ok"] is True
    assert checks["postgres"] == {"ok": True, "backend": "memory"}


@pytest.mark.asyncio
async def test_metrics_require_admin_token(api_client, monkeypatch):
    monkeypatch.setattr(settings, "obs_metrics_public", False)
    monkeypatch.setattr(settings, "obs_admin_token", "secret-token")

    denied = await api_client.get("/metrics")
    assert denied.status_code == 403

    allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "secret-token"})
    assert allowed.status_code == 200
    assert "petmatch_http_requests_total" in allowed.text


@pytest.mark.asyncio
async def test_match_repair_trigger(api_client, world, monkeypatch):
    monkeypatch.setattr(settings, "obs_admin_token", "secret-token")

    response = await api_client.post("/ops/match-repair", headers={"X-Admin-Token": "secret-token"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "scanned": 0, "repaired": 0, "cancelled": 0, "failed": 0}

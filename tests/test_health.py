import pytest


@pytest.mark.anyio("asyncio")
async def test_healthcheck(client):
    response = await client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] in {"ok", "degraded"}
    assert payload["db_status"] == "ok"
    assert payload["migrations_status"] == "up_to_date"
    assert isinstance(payload["scheduler_config_enabled"], bool)
    assert isinstance(payload["scheduler_running"], bool)
    assert payload["last_sweep"].keys() >= {"at", "expired", "ok"}


@pytest.mark.anyio("asyncio")
async def test_health_reports_last_sweep(client):
    await client.get("/alerts")
    payload = (await client.get("/health")).json()
    assert payload["last_sweep"]["ok"] is True
    assert payload["last_sweep"]["at"] is not None


@pytest.mark.anyio("asyncio")
async def test_health_status_degraded_when_db_status_error(monkeypatch, client):
    from app.routers import health as health_module

    monkeypatch.setattr(health_module, "_db_status", lambda: "error")

    response = await client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["db_ok"] is False
    assert payload["migrations_status"] == "unknown"

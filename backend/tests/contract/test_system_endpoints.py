"""Health, readiness and Prometheus exposition endpoints."""
import pytest
from httpx import AsyncClient

pytestmark = [pytest.mark.contract]


@pytest.mark.asyncio
async def test_root_health(async_client: AsyncClient):
    r = await async_client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["database"]["connection"] is True


@pytest.mark.asyncio
async def test_system_health_and_readiness(async_client: AsyncClient):
    r = await async_client.get("/api/v1/system/health")
    assert r.status_code == 200
    assert r.json()["data"] == {"ok": True}

    r = await async_client.get("/api/v1/system/readiness")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["database"]["status"] == "healthy"
    assert isinstance(data["pdf_fonts"]["cyrillic"], bool)
    assert data["uptime_s"] >= 0


@pytest.mark.asyncio
async def test_prometheus_metrics_endpoint(async_client: AsyncClient):
    # Trigger at least one application route so the labelled collectors have samples
    await async_client.get("/health")
    r = await async_client.get("/metrics")
    assert r.status_code == 200
    text_payload = r.text
    assert "app_requests_total" in text_payload
    assert "app_request_duration_seconds" in text_payload
    assert "app_uptime_seconds" in text_payload

"""Liveness, readiness and version probes."""

import pytest


class TestProbes:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_ready_degraded_without_redis(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["checks"] == {"database": "ok", "redis": "not configured"}

    @pytest.mark.asyncio
    async def test_version(self, client):
        body = (await client.get("/version")).json()
        assert body["version"] == "0.1.0"
        assert "environment" in body

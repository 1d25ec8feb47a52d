"""Integration tests for the health endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from midnight_admin import __version__


@pytest.mark.integration
class TestHealth:
    async def test_liveness(self, client: AsyncClient) -> None:
        response = await client.get("/health/live")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}

    async def test_readiness(self, client: AsyncClient) -> None:
        response = await client.get("/health/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "connected"
        assert data["redis"] == "disabled"

    async def test_probes_need_no_key(self, client: AsyncClient) -> None:
        response = await client.get("/health/live", headers={"Authorization": "Bearer wrong"})
        assert response.status_code == 200

"""Tests for health and version endpoints."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_reports_credential_service(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["status"] == "ok"
    assert data["credentialService"] == "ready"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_version_endpoint(client: AsyncClient):
    response = await client.get("/version")
    assert response.status_code == 200
    data = response.json()
    assert "git_sha" in data
    assert data["version"] == "0.1.0"

"""Tests for the health check endpoint."""

import pytest
from httpx import ASGITransport, AsyncClient

from chatwarden.app import app


@pytest.mark.asyncio
async def test_health_returns_ok():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        resp = await ac.get("/")
    assert resp.status_code == 200
    assert resp.text == "ok"

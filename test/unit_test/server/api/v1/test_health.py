from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from heritage_whisper.server.core import constant
from heritage_whisper.server.core.config import settings
from heritage_whisper.server.main import app
from heritage_whisper.server.services import deps

pytestmark = pytest.mark.asyncio


async def test_liveness(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "environment": "test"}


async def test_version_reports_project_constants(client: AsyncClient):
    response = await client.get("/version")

    assert response.json() == {
        "project": "HeritageWhisper API",
        "version": constant.VERSION,
        "api_path": "/api/v1",
        "schema_version": "v1",
    }


async def test_ready_with_database_and_no_integrations(client: AsyncClient):
    response = await client.get("/ready")

    assert response.status_code == 200
    assert response.json() == {
        "ready": True,
        "database": "reachable",
        "integrations": {"supabase": False, "openai": False, "stripe": False, "resend": False, "pdfshift": False},
    }


async def test_ready_lists_configured_integrations(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(settings, "supabase_url", "http://mock-supabase")

    integrations = (await client.get("/ready")).json()["integrations"]

    assert integrations["openai"] is True
    assert integrations["supabase"] is False


async def test_unreachable_database_is_not_ready(client: AsyncClient):
    broken = AsyncMock()
    broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

    async def broken_session():
        yield broken

    app.dependency_overrides[deps.get_session] = broken_session

    response = await client.get("/ready")

    assert response.status_code == 503
    assert response.json()["database"] == "unreachable"

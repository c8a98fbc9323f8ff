from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

import httpx
import pytest

# Load dotenv files early so test fixtures can read secrets via os.getenv
from dotenv import load_dotenv

TEST_ROOT = Path(__file__).resolve().parent
load_dotenv(TEST_ROOT / ".env", override=False)

# Settings are read once at import, so the test environment is pinned before
# anything imports heritage_whisper.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["HERITAGE_WHISPER_ENV"] = "test"
os.environ["APP_URL"] = "http://localhost:3000"
os.environ["API_URL"] = "http://localhost:8000"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["UNSUBSCRIBE_SECRET"] = "test-unsubscribe-secret"
os.environ["ENABLE_FILE_LOGGING"] = "false"
for _name in (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "OPENAI_API_KEY",
    "STRIPE_SECRET_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "RESEND_API_KEY",
    "PDFSHIFT_API_KEY",
    "LOGFIRE_TOKEN",
):
    os.environ.pop(_name, None)


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://test",
        "/",  # Allow relative paths (used by ASGI transport)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str) or isinstance(self._transport, httpx.MockTransport):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str) or isinstance(self._transport, httpx.MockTransport):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
    yield

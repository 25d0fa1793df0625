"""Tests for startup configuration."""

from unittest.mock import patch

import pytest
from httpx import AsyncClient, ASGITransport

from portfolio_dashboard import config
from portfolio_dashboard.errors import ConfigurationError
from portfolio_dashboard.main import app, lifespan
from portfolio_dashboard.services import container, supabase


@pytest.fixture(autouse=True)
def no_cached_client(monkeypatch):
    monkeypatch.setattr(supabase, "_client", None)


@pytest.mark.parametrize(
    "url, key, missing",
    [
        ("", "anon-key", "SUPABASE_URL"),
        ("https://p.supabase.co", "", "SUPABASE_ANON_KEY"),
        ("", "", "SUPABASE_URL, SUPABASE_ANON_KEY"),
    ],
)
def test_missing_settings_are_fatal(monkeypatch, url, key, missing):
    monkeypatch.setattr(config, "SUPABASE_URL", url)
    monkeypatch.setattr(config, "SUPABASE_ANON_KEY", key)
    with pytest.raises(ConfigurationError, match=missing):
        config.require_supabase_settings()


@pytest.mark.asyncio
async def test_startup_fails_without_settings(monkeypatch):
    monkeypatch.setattr(config, "SUPABASE_URL", "")
    monkeypatch.setattr(config, "SUPABASE_ANON_KEY", "")
    with pytest.raises(ConfigurationError):
        async with lifespan(app):
            pass


@pytest.mark.asyncio
async def test_client_built_from_settings(monkeypatch):
    monkeypatch.setattr(config, "SUPABASE_URL", "https://p.supabase.co")
    monkeypatch.setattr(config, "SUPABASE_ANON_KEY", "anon-key")
    client = supabase.get_supabase_client()
    try:
        assert supabase.get_supabase_client() is client
    finally:
        await supabase.close_supabase_client()
    assert supabase._client is None


@pytest.mark.asyncio
async def test_health_does_not_need_settings():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.get("/api/health")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_restart_does_not_reuse_services_bound_to_closed_client(monkeypatch):
    monkeypatch.setattr(config, "SUPABASE_URL", "https://p.supabase.co")
    monkeypatch.setattr(config, "SUPABASE_ANON_KEY", "anon-key")
    container.reset_services()
    with patch("portfolio_dashboard.main.start_scheduler"), \
         patch("portfolio_dashboard.main.stop_scheduler"):
        async with lifespan(app):
            before = container.get_portfolio_service()
        async with lifespan(app):
            after = container.get_portfolio_service()
            assert after is not before
            assert after._client is supabase.get_supabase_client()
            assert not after._client._http.is_closed
    assert before._client._http.is_closed
    container.reset_services()

"""Tests for the WorkbookClient facade."""

import pytest

from workbook import WorkbookClient
from workbook.errors import ConfigurationError
from workbook.transport import HttpxTransport, StubTransport
from workbook.types import Outcome

IDS_PATH = "/api/json/reply/ResourceIdsRequest"


class TestWorkbookClient:
    def test_services_share_transport_and_cache(self, service_config):
        stub = StubTransport()
        client = WorkbookClient(service_config, transport=stub)

        assert client.resources.transport is stub
        assert client.jobs.transport is stub
        assert client.resources.cache is client.jobs.cache is client.cache

    def test_default_transport_is_httpx(self, service_config):
        client = WorkbookClient(service_config)

        assert isinstance(client.transport, HttpxTransport)
        assert client.transport.base_url == "https://crm.example.com"

    @pytest.mark.asyncio
    async def test_health_check_healthy(self, service_config):
        client = WorkbookClient(service_config, transport=StubTransport(responses={IDS_PATH: Outcome.ok([1, 2])}))

        report = await client.health_check()

        assert report["status"] == "healthy"
        assert report["services"] == {"resources": True}
        assert report["error"] is None
        assert report["config"] == {"host": "crm.example.com", "timeout_ms": 1000}

    @pytest.mark.asyncio
    async def test_health_check_unhealthy(self, service_config):
        stub = StubTransport(responses={IDS_PATH: Outcome.fail("Request timeout", "timeout")})
        client = WorkbookClient(service_config, transport=stub)

        report = await client.health_check()

        assert report["status"] == "unhealthy"
        assert report["error"] == "Request timeout"

    @pytest.mark.asyncio
    async def test_cache_stats_and_clear(self, service_config):
        client = WorkbookClient(service_config, transport=StubTransport(responses={IDS_PATH: Outcome.ok([1])}))
        await client.health_check()

        assert client.cache_stats()["keys"] == ["resource:ids:active"]

        client.clear_all_caches()

        assert client.cache_stats() == {"stats": {"hits": 0, "misses": 0, "keys": 0}, "keys": []}

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("WORKBOOK_API_KEY_DEV", "dev-key")
        monkeypatch.setenv("WORKBOOK_BASE_URL_DEV", "demo.workbook.net")
        monkeypatch.setenv("CACHE_JOBS_TTL", "60")

        client = WorkbookClient.from_environment("dev", transport=StubTransport())

        assert client.config.api_key == "dev-key"
        assert client.cache.settings.jobs_ttl == 60

    def test_from_environment_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("WORKBOOK_API_KEY_PROD", raising=False)
        monkeypatch.setenv("WORKBOOK_BASE_URL_PROD", "acme.workbook.net")

        with pytest.raises(ConfigurationError, match="WORKBOOK_API_KEY_PROD"):
            WorkbookClient.from_environment("prod")

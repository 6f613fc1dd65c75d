"""
Tests for the GeckoTerminal provider transport: caching, retries and failure handling.
"""

import asyncio
from datetime import timedelta

import httpx
import pytest

from tokenlink.config import Settings
from tokenlink.providers import geckoterminal as gt
from tokenlink.providers.geckoterminal import POOL_INCLUDES, GeckoTerminalProvider

from tests.gt_fixtures import BONK_MINT, bonk_pool_payload


class _DummyResponse:
    def __init__(self, status_code=200, payload=None, *, bad_json=False):
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json
        self.elapsed = timedelta(milliseconds=42)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPStatusError("error", request=None, response=None)

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._payload


class _DummyClient:
    """Replays queued responses (or exceptions) and records each GET."""

    def __init__(self, *responses, delay=0.0):
        self.responses = list(responses)
        self.requests = []
        self.delay = delay
        self.is_closed = False

    async def get(self, url, params=None, headers=None):
        self.requests.append({"url": url, "params": params, "headers": headers})
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self):
        self.is_closed = True


def make_provider(client, **overrides):
    settings = Settings(geckoterminal_base_url="https://gt.test/api/v2/", **overrides)
    return GeckoTerminalProvider(settings=settings, client=client)


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []

    async def fake_sleep(seconds):
        recorded.append(seconds)

    monkeypatch.setattr(gt.asyncio, "sleep", fake_sleep)
    return recorded


class TestEndpoints:
    @pytest.mark.asyncio
    async def test_search_pools_request_shape(self):
        client = _DummyClient(_DummyResponse(payload=bonk_pool_payload()))
        provider = make_provider(client, search_page_size=25)

        payload = await provider.search_pools("$bonk", "solana")

        assert payload == bonk_pool_payload()
        [request] = client.requests
        assert request["url"] == "https://gt.test/api/v2/search/pools"
        assert request["params"] == {"query": "$bonk", "network": "solana", "include": POOL_INCLUDES, "per_page": 25}
        assert request["headers"]["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_search_tokens_request_shape(self):
        client = _DummyClient(_DummyResponse(payload={"data": []}))
        provider = make_provider(client)

        await provider.search_tokens("bonk", "solana")

        assert client.requests[0]["url"].endswith("/search/tokens")
        assert client.requests[0]["params"]["query"] == "bonk"

    @pytest.mark.asyncio
    async def test_pools_for_token_path(self):
        client = _DummyClient(_DummyResponse(payload={"data": []}))
        provider = make_provider(client)

        await provider.fetch_pools_for_token(BONK_MINT, "solana")

        assert client.requests[0]["url"] == f"https://gt.test/api/v2/networks/solana/tokens/{BONK_MINT}/pools"

    @pytest.mark.asyncio
    async def test_empty_query_skips_request(self):
        client = _DummyClient(_DummyResponse(payload={}))
        provider = make_provider(client)

        assert await provider.search_pools("", "solana") is None
        assert await provider.search_tokens("", "solana") is None
        assert await provider.fetch_pools_for_token("", "solana") is None
        assert client.requests == []


class TestCaching:
    @pytest.mark.asyncio
    async def test_identical_requests_hit_cache(self):
        client = _DummyClient(_DummyResponse(payload={"data": []}))
        provider = make_provider(client)

        first = await provider.search_pools("bonk", "solana")
        second = await provider.search_pools("bonk", "solana")

        assert first == second == {"data": []}
        assert len(client.requests) == 1

    @pytest.mark.asyncio
    async def test_concurrent_identical_requests_share_one_call(self):
        client = _DummyClient(_DummyResponse(payload={"data": []}), delay=0.02)
        provider = make_provider(client)

        results = await asyncio.gather(*(provider.search_pools("bonk", "solana") for _ in range(3)))

        assert results == [{"data": []}] * 3
        assert len(client.requests) == 1

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self):
        client = _DummyClient(_DummyResponse(404), _DummyResponse(payload={"data": []}))
        provider = make_provider(client)

        assert await provider.search_pools("bonk", "solana") is None
        assert await provider.search_pools("bonk", "solana") == {"data": []}
        assert len(client.requests) == 2


class TestFailureHandling:
    @pytest.mark.asyncio
    async def test_client_error_returns_none_without_retry(self, sleeps):
        client = _DummyClient(_DummyResponse(404))
        provider = make_provider(client, max_retries=3)

        assert await provider.search_pools("bonk", "solana") is None
        assert len(client.requests) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_per_call_retry_override(self, sleeps):
        client = _DummyClient(_DummyResponse(503), _DummyResponse(payload={"data": []}))
        provider = make_provider(client, max_retries=3)

        assert await provider.get_json("/trending_pools", {"network": "solana"}, max_retries=0) is None
        assert len(client.requests) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_no_content(self):
        provider = make_provider(_DummyClient(_DummyResponse(204)))
        assert await provider.search_pools("bonk", "solana") is None

    @pytest.mark.asyncio
    async def test_rate_limit_retried_with_backoff(self, sleeps):
        client = _DummyClient(_DummyResponse(429), _DummyResponse(503), _DummyResponse(payload={"data": []}))
        provider = make_provider(client, max_retries=2)

        assert await provider.search_pools("bonk", "solana") == {"data": []}
        assert len(client.requests) == 3
        assert sleeps == [1.5, 3.0]

    @pytest.mark.asyncio
    async def test_retries_disabled_by_default(self, sleeps):
        client = _DummyClient(_DummyResponse(500))
        provider = make_provider(client)

        assert await provider.search_pools("bonk", "solana") is None
        assert len(client.requests) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_transport_error(self):
        client = _DummyClient(httpx.ConnectError("connection refused"))
        provider = make_provider(client)

        assert await provider.search_pools("bonk", "solana") is None

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        provider = make_provider(_DummyClient(_DummyResponse(bad_json=True)))
        assert await provider.search_pools("bonk", "solana") is None

    @pytest.mark.asyncio
    async def test_non_object_json(self):
        provider = make_provider(_DummyClient(_DummyResponse(payload=["not", "an", "object"])))
        assert await provider.search_pools("bonk", "solana") is None


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_health_check(self):
        provider = make_provider(_DummyClient(_DummyResponse(payload={"data": []})))

        assert await provider.health_check() == {"status": "healthy", "latency_ms": 42}

    @pytest.mark.asyncio
    async def test_health_check_error(self):
        provider = make_provider(_DummyClient(_DummyResponse(503)))

        health = await provider.health_check()
        assert health["status"] == "error"

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self):
        client = _DummyClient(_DummyResponse(payload={}))
        provider = make_provider(client)

        await provider.close()

        assert client.is_closed is False

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        provider = make_provider(None)
        client = await provider._get_client()

        await provider.close()

        assert client.is_closed is True

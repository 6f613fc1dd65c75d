"""
GeckoTerminal API Provider

Read-only access to GeckoTerminal's public v2 API for:
- Pool search (by ticker, contract address or free text)
- Token search
- Pools of a single token
- Trending pools

All calls are best-effort. Failures are logged and surface as ``None`` so the
resolution engine can treat them as "no candidates".

Docs: https://apiguide.geckoterminal.com
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from ..cache import ResponseCache
from ..config import Settings, settings as default_settings
from .base import PoolSearchProvider

logger = logging.getLogger(__name__)

POOL_INCLUDES = "base_token,quote_token,dex"


class GeckoTerminalProvider(PoolSearchProvider):
    """GeckoTerminal pool/token search provider (no API key required)."""

    name = "geckoterminal"

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings or default_settings
        self.base_url = self._settings.geckoterminal_base_url.rstrip("/")
        self.timeout_s = self._settings.request_timeout_seconds
        self.max_retries = self._settings.max_retries
        self._client = client
        self._owns_client = client is None
        self._semaphore = asyncio.Semaphore(self._settings.max_concurrent_requests)
        self._cache = ResponseCache(
            default_ttl=self._settings.response_cache_ttl_seconds,
            max_size=self._settings.max_cache_size,
        )

    def _build_headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_s,
                headers=self._build_headers(),
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def ready(self) -> bool:
        return bool(self.base_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "GeckoTerminal base URL not configured"}

        try:
            client = await self._get_client()
            response = await client.get(f"{self.base_url}/networks", params={"page": 1})
            response.raise_for_status()
            return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    # =========================================================================
    # Search endpoints
    # =========================================================================

    async def search_pools(self, query: str, network: str) -> Optional[Dict[str, Any]]:
        if not query:
            return None
        return await self.get_json(
            "/search/pools",
            {
                "query": query,
                "network": network,
                "include": POOL_INCLUDES,
                "per_page": self._settings.search_page_size,
            },
        )

    async def search_tokens(self, query: str, network: str) -> Optional[Dict[str, Any]]:
        if not query:
            return None
        return await self.get_json(
            "/search/tokens",
            {
                "query": query,
                "network": network,
                "per_page": self._settings.search_page_size,
            },
        )

    async def fetch_pools_for_token(self, address: str, network: str) -> Optional[Dict[str, Any]]:
        if not address:
            return None
        return await self.get_json(
            f"/networks/{quote(network, safe='')}/tokens/{quote(address, safe='')}/pools",
            {"include": POOL_INCLUDES, "per_page": self._settings.search_page_size},
        )

    # =========================================================================
    # Transport
    # =========================================================================

    async def get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        max_retries: Optional[int] = None,
    ) -> Optional[Dict[str, Any]]:
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        params = dict(params or {})
        cache_key = json.dumps([url, params], sort_keys=True, default=str)
        retries = self.max_retries if max_retries is None else max(max_retries, 0)
        return await self._cache.get_or_fetch(cache_key, lambda: self._fetch(url, params, retries))

    async def _fetch(self, url: str, params: Dict[str, Any], max_retries: int) -> Optional[Dict[str, Any]]:
        attempt = 0
        while True:
            attempt += 1
            try:
                async with self._semaphore:
                    client = await self._get_client()
                    response = await client.get(url, params=params, headers=self._build_headers())
            except httpx.HTTPError as e:
                logger.warning(f"GeckoTerminal transport error for {url}: {e}")
                status = None
            else:
                status = response.status_code
                if status == 204:
                    return None
                if 200 <= status < 300:
                    return self._decode(response, url)
                if status != 429 and status < 500:
                    logger.debug(f"GeckoTerminal HTTP {status} for {url}")
                    return None
                logger.warning(f"GeckoTerminal HTTP {status} for {url}")

            if attempt > max_retries:
                return None
            await asyncio.sleep(min(1.5 * attempt, 4.0))

    @staticmethod
    def _decode(response: httpx.Response, url: str) -> Optional[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"GeckoTerminal returned malformed JSON for {url}: {e}")
            return None
        if not isinstance(data, dict):
            logger.debug(f"GeckoTerminal returned non-object JSON for {url}")
            return None
        return data


__all__ = ["GeckoTerminalProvider", "POOL_INCLUDES"]

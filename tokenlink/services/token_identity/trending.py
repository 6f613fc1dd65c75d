"""Trending-pool discovery used as a ranking tie-breaker."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
from urllib.parse import quote

from ...config import Settings, settings as default_settings
from ...providers.base import PoolSearchProvider
from ..address import canonical_address, is_valid_address_for_network, normalize_network
from .models import TrendingSet
from .scoring import as_mapping, to_text

logger = logging.getLogger(__name__)

TRENDING_INCLUDES = "base_token,quote_token"


def trending_endpoints(network: str) -> List[Tuple[str, Dict[str, Any]]]:
    """Ordered endpoint shapes for the same trending-pools resource."""

    return [
        (f"/networks/{quote(network, safe='')}/trending_pools", {"include": TRENDING_INCLUDES}),
        ("/trending_pools", {"network": network, "include": TRENDING_INCLUDES}),
    ]


class TrendingSetFetcher:
    """Collects trending token addresses and symbols for a network.

    Best-effort: an empty :class:`TrendingSet` is a valid answer and nothing
    here raises for upstream problems.
    """

    def __init__(self, provider: PoolSearchProvider, settings: Optional[Settings] = None) -> None:
        self._provider = provider
        self._settings = settings or default_settings

    async def fetch(self, network: str) -> TrendingSet:
        network = normalize_network(network)
        for path, params in trending_endpoints(network):
            payload = await self._provider.get_json(path, params, max_retries=0)
            if not payload:
                continue
            addresses, symbols = self._collect(payload, network)
            if addresses:
                logger.debug(f"Trending set for {network}: {len(addresses)} tokens via {path}")
                return TrendingSet.of(addresses, symbols)
        logger.info(f"No trending tokens found for {network}")
        return TrendingSet.empty()

    async def fetch_many(self, networks: Iterable[str]) -> TrendingSet:
        unique = list(dict.fromkeys(normalize_network(n) for n in networks))
        if not unique:
            return TrendingSet.empty()
        results = await asyncio.gather(*(self.fetch(n) for n in unique), return_exceptions=True)
        merged = TrendingSet.empty()
        for network, result in zip(unique, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"Trending fetch failed for {network}: {result}")
                continue
            merged = merged.union(result)
        return merged

    def _collect(self, payload: Dict[str, Any], network: str) -> Tuple[Set[str], Set[str]]:
        quote_symbols = {s.lower() for s in self._settings.accepted_quote_symbols}
        addresses: Set[str] = set()
        symbols: Set[str] = set()
        included = payload.get("included")
        if not isinstance(included, list):
            return addresses, symbols

        for item in included:
            item = as_mapping(item)
            if "token" not in to_text(item.get("type")):
                continue
            attrs = as_mapping(item.get("attributes"))
            address = canonical_address(to_text(attrs.get("address")))
            if not is_valid_address_for_network(address, network):
                continue
            addresses.add(address)
            symbol = to_text(attrs.get("symbol")).lstrip("$").lower()
            if symbol and symbol not in quote_symbols:
                symbols.add(symbol)
        return addresses, symbols


__all__ = ["TrendingSetFetcher", "trending_endpoints"]

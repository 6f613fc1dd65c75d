"""Token-search fallback for queries whose pools the pool search missed."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ...config import Settings, settings as default_settings
from ...providers.base import PoolSearchProvider
from ..address import canonical_address, is_valid_address_for_network
from .candidates import build_candidates
from .models import Candidate, QueryMode, ResolutionQuery, TrendingSet
from .scoring import as_mapping, fuzzy_match, strip_dollar, to_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveredToken:
    address: str
    symbol: str
    network: str
    variant: str


def parse_token_search(payload: Optional[Dict], network: str, variant: str) -> List[DiscoveredToken]:
    rows = as_mapping(payload).get("data")
    if not isinstance(rows, list):
        return []
    found: List[DiscoveredToken] = []
    for row in rows:
        attrs = as_mapping(as_mapping(row).get("attributes"))
        address = canonical_address(to_text(attrs.get("address")))
        if not is_valid_address_for_network(address, network):
            continue
        found.append(DiscoveredToken(address, to_text(attrs.get("symbol")), network, variant))
    return found


class TokenCentricFallback:
    """Recover candidates through ``search_tokens`` and per-token pool lists."""

    def __init__(self, provider: PoolSearchProvider, settings: Optional[Settings] = None) -> None:
        self._provider = provider
        self._settings = settings or default_settings

    async def candidates(
        self,
        query: ResolutionQuery,
        variants: Sequence[str],
        networks: Sequence[str],
        trending: Optional[TrendingSet] = None,
    ) -> List[Candidate]:
        searches: List[Tuple[str, str]] = [(v, n) for v in variants for n in networks]
        if not searches:
            return []

        payloads = await asyncio.gather(*(self._provider.search_tokens(v, n) for v, n in searches))

        tokens: List[DiscoveredToken] = []
        seen = set()
        for (variant, network), payload in zip(searches, payloads):
            for token in parse_token_search(payload, network, variant):
                if (token.network, token.address) in seen:
                    continue
                seen.add((token.network, token.address))
                tokens.append(token)

        tokens = tokens[: self._settings.fallback_max_tokens]
        if not tokens:
            return []

        pool_payloads = await asyncio.gather(
            *(self._provider.fetch_pools_for_token(t.address, t.network) for t in tokens)
        )

        out: List[Candidate] = []
        for token, payload in zip(tokens, pool_payloads):
            built = build_candidates(
                payload,
                token.address,
                QueryMode.ADDRESS,
                network=token.network,
                trending=trending,
                settings=self._settings,
                variant=token.variant,
            )
            out.extend(c for c in built if self._matches(query, c))

        logger.info(
            f"Token fallback for {query.mode.value} {query.key!r}: "
            f"{len(tokens)} tokens inspected, {len(out)} candidates kept"
        )
        return out

    def _matches(self, query: ResolutionQuery, candidate: Candidate) -> bool:
        if query.mode is QueryMode.ADDRESS:
            return candidate.address == query.key
        if query.mode is QueryMode.TICKER:
            wanted = {query.key, *self._settings.aliases_for(query.key)}
            return strip_dollar(candidate.symbol) in wanted
        return fuzzy_match(query.key, candidate.symbol) or fuzzy_match(query.key, candidate.name)


__all__ = ["DiscoveredToken", "TokenCentricFallback", "parse_token_search"]

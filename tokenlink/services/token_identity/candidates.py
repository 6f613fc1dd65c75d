"""Turn GeckoTerminal pool payloads into ranked-ready candidates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ...config import Settings, settings as default_settings
from ..address import canonical_address, is_valid_address_for_network, normalize_network
from .models import Candidate, QueryMode, TrendingSet, normalize_phrase
from .scoring import (
    as_mapping,
    fuzzy_match,
    pick_pool_market_cap,
    pick_token_market_cap,
    pick_volume,
    strip_dollar,
    to_number,
    to_text,
    venue_priority,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _TokenRecord:
    id: str
    symbol: str
    name: str
    address: str
    attributes: Dict[str, Any]


def _included(payload: Any) -> List[Dict[str, Any]]:
    included = as_mapping(payload).get("included")
    if not isinstance(included, list):
        return []
    return [item for item in included if isinstance(item, dict)]


def parse_tokens(payload: Any) -> Dict[str, _TokenRecord]:
    """Included token records keyed by their JSON:API id (first one wins)."""

    tokens: Dict[str, _TokenRecord] = {}
    for item in _included(payload):
        if "token" not in to_text(item.get("type")):
            continue
        token_id = to_text(item.get("id"))
        if not token_id or token_id in tokens:
            continue
        attrs = dict(as_mapping(item.get("attributes")))
        tokens[token_id] = _TokenRecord(
            id=token_id,
            symbol=to_text(attrs.get("symbol")),
            name=to_text(attrs.get("name")),
            address=to_text(attrs.get("address")),
            attributes=attrs,
        )
    return tokens


def parse_venues(payload: Any) -> Dict[str, str]:
    venues: Dict[str, str] = {}
    for item in _included(payload):
        if "dex" not in to_text(item.get("type")):
            continue
        venue_id = to_text(item.get("id"))
        if not venue_id or venue_id in venues:
            continue
        attrs = as_mapping(item.get("attributes"))
        venues[venue_id] = to_text(attrs.get("name")) or to_text(attrs.get("slug"))
    return venues


def _relationship_id(row: Dict[str, Any], name: str) -> str:
    relationships = as_mapping(row.get("relationships"))
    return to_text(as_mapping(as_mapping(relationships.get(name)).get("data")).get("id"))


class _SideMatcher:
    """Decides which side of a pool (if any) a query refers to."""

    def __init__(self, query: str, mode: QueryMode, settings: Settings) -> None:
        self.mode = mode
        if mode is QueryMode.ADDRESS:
            self.address = canonical_address(query)
        elif mode is QueryMode.TICKER:
            ticker = strip_dollar(query)
            self.tickers = {ticker, *settings.aliases_for(ticker)}
        else:
            self.phrase = normalize_phrase(query)

    def matches(self, token: _TokenRecord, pair_name: str) -> bool:
        if self.mode is QueryMode.ADDRESS:
            return canonical_address(token.address) == self.address
        if self.mode is QueryMode.TICKER:
            return strip_dollar(token.symbol) in self.tickers
        return (
            fuzzy_match(self.phrase, token.symbol)
            or fuzzy_match(self.phrase, token.name)
            or fuzzy_match(self.phrase, pair_name)
        )

    def display_symbol(self, token: _TokenRecord) -> str:
        if self.mode is QueryMode.NAME:
            return token.symbol or token.name
        return token.symbol


def build_candidates(
    payload: Optional[Dict[str, Any]],
    query: str,
    mode: QueryMode,
    *,
    network: str = "solana",
    trending: Optional[TrendingSet] = None,
    settings: Optional[Settings] = None,
    variant: Optional[str] = None,
) -> List[Candidate]:
    """Build at most one candidate per pool row of a pool-list payload.

    Rows are dropped when their venue is not allow-listed, when neither side
    carries an address valid on ``network``, when the quote side is not an
    accepted quote asset, or when neither side matches ``query`` in ``mode``.
    The base side is tried before the quote side. Output keeps payload order.
    """

    settings = settings or default_settings
    trending = trending or TrendingSet.empty()
    network = normalize_network(network)
    rows = as_mapping(payload).get("data")
    if not isinstance(rows, list) or not rows:
        return []

    tokens = parse_tokens(payload)
    venues = parse_venues(payload)
    matcher = _SideMatcher(query, mode, settings)
    accepted_quotes = set(settings.accepted_quote_symbols)
    empty = _TokenRecord("", "", "", "", {})

    candidates: List[Candidate] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        attrs = as_mapping(row.get("attributes"))
        base = tokens.get(_relationship_id(row, "base_token"), empty)
        quote_token = tokens.get(_relationship_id(row, "quote_token"), empty)

        venue_name = (
            venues.get(_relationship_id(row, "dex"))
            or to_text(attrs.get("dex_name"))
            or to_text(attrs.get("name"))
        )
        score = venue_priority(venue_name, settings.venue_priorities)
        if score <= 0:
            continue

        base_valid = is_valid_address_for_network(canonical_address(base.address), network)
        quote_valid = is_valid_address_for_network(canonical_address(quote_token.address), network)
        if not base_valid and not quote_valid:
            continue

        quote_symbol = quote_token.symbol.upper()
        if quote_symbol not in accepted_quotes:
            continue

        pair_name = to_text(attrs.get("name")) or f"{base.symbol}/{quote_token.symbol}"
        if base_valid and matcher.matches(base, pair_name):
            chosen = base
        elif quote_valid and matcher.matches(quote_token, pair_name):
            chosen = quote_token
        else:
            continue

        address = canonical_address(chosen.address)
        symbol = matcher.display_symbol(chosen)
        candidates.append(
            Candidate(
                address=address,
                symbol=symbol,
                name=chosen.name,
                venue_name=venue_name,
                venue_score=score,
                volume_24h_usd=pick_volume(attrs.get("volume_usd")),
                liquidity_usd=to_number(attrs.get("reserve_in_usd")),
                market_cap_usd=pick_pool_market_cap(attrs) or pick_token_market_cap(chosen.attributes),
                quote_symbol=quote_symbol,
                trending_boost=trending.boost_for(address, symbol),
                network=network,
                query=variant if variant is not None else query,
            )
        )

    logger.debug(f"Built {len(candidates)} candidates from {len(rows)} pools for {mode.value} {query!r} on {network}")
    return candidates


__all__ = ["build_candidates", "parse_tokens", "parse_venues"]

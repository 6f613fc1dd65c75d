"""
Deterministic ranking and selection of candidates.

Two orderings are used:
- composite score, to order the noisy merge of many variant/network searches
- cascading filters, for the final pick inside the winning address cluster

Every sort here is stable, so candidates that tie on every criterion keep the
order in which they were parsed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ...config import Settings, settings as default_settings
from .models import Candidate, OutcomeReason, QueryMode
from .scoring import quote_preference

TREND_WEIGHT = 100_000
VENUE_WEIGHT = 10_000
QUOTE_WEIGHT = 5_000
VOLUME_WEIGHT = 50
LIQUIDITY_WEIGHT = 5
MARKET_CAP_WEIGHT = 1

BASE_CONFIDENCE: Dict[QueryMode, int] = {
    QueryMode.ADDRESS: 99,
    QueryMode.TICKER: 97,
    QueryMode.NAME: 85,
}

FALLBACK_CONFIDENCE: Dict[QueryMode, int] = {
    QueryMode.ADDRESS: 90,
    QueryMode.TICKER: 95,
    QueryMode.NAME: 70,
}


def composite_score(candidate: Candidate, settings: Optional[Settings] = None) -> float:
    settings = settings or default_settings
    return (
        candidate.trending_boost * TREND_WEIGHT
        + candidate.venue_score * VENUE_WEIGHT
        + quote_preference(candidate.quote_symbol, settings.quote_preferences) * QUOTE_WEIGHT
        + candidate.volume_24h_usd * VOLUME_WEIGHT
        + candidate.liquidity_usd * LIQUIDITY_WEIGHT
        + candidate.market_cap_usd * MARKET_CAP_WEIGHT
    )


def sort_candidates(candidates: Sequence[Candidate], settings: Optional[Settings] = None) -> List[Candidate]:
    settings = settings or default_settings
    return sorted(candidates, key=lambda c: composite_score(c, settings), reverse=True)


def pick_best_for_ticker(candidates: Sequence[Candidate], settings: Optional[Settings] = None) -> Optional[Candidate]:
    """Narrow by venue, then quote asset, then order by volume/liquidity/market cap."""

    if not candidates:
        return None
    settings = settings or default_settings
    prefs = settings.quote_preferences

    best_venue = max(c.venue_score for c in candidates)
    pool = [c for c in candidates if c.venue_score == best_venue]

    best_quote = max(quote_preference(c.quote_symbol, prefs) for c in pool)
    pool = [c for c in pool if quote_preference(c.quote_symbol, prefs) == best_quote]

    pool = sorted(
        pool,
        key=lambda c: (c.volume_24h_usd, c.liquidity_usd, c.market_cap_usd),
        reverse=True,
    )
    return pool[0]


@dataclass
class AddressCluster:
    """All candidates that point at one canonical address."""

    address: str
    candidates: List[Candidate] = field(default_factory=list)
    variants: Set[str] = field(default_factory=set)
    total_volume: float = 0.0
    total_liquidity: float = 0.0
    best_venue_score: int = 0
    best_quote_preference: int = 0

    @property
    def count(self) -> int:
        return len(self.variants)

    def add(self, candidate: Candidate, preference: int) -> None:
        self.candidates.append(candidate)
        self.variants.add(candidate.query)
        self.total_volume += candidate.volume_24h_usd
        self.total_liquidity += candidate.liquidity_usd
        self.best_venue_score = max(self.best_venue_score, candidate.venue_score)
        self.best_quote_preference = max(self.best_quote_preference, preference)

    def rank_key(self) -> Tuple[int, float, float, int, int]:
        return (
            self.count,
            self.total_volume,
            self.total_liquidity,
            self.best_venue_score,
            self.best_quote_preference,
        )


def cluster_by_address(candidates: Sequence[Candidate], settings: Optional[Settings] = None) -> List[AddressCluster]:
    settings = settings or default_settings
    clusters: Dict[str, AddressCluster] = {}
    for candidate in candidates:
        cluster = clusters.get(candidate.address)
        if cluster is None:
            cluster = clusters[candidate.address] = AddressCluster(address=candidate.address)
        cluster.add(candidate, quote_preference(candidate.quote_symbol, settings.quote_preferences))
    return list(clusters.values())


def pick_cluster(clusters: Sequence[AddressCluster]) -> Optional[AddressCluster]:
    """Best cluster by consensus, then volume, liquidity, venue, quote. Earliest wins ties."""

    best: Optional[AddressCluster] = None
    for cluster in clusters:
        if best is None or cluster.rank_key() > best.rank_key():
            best = cluster
    return best


def passes_guard(candidate: Candidate, settings: Optional[Settings] = None) -> bool:
    settings = settings or default_settings
    return (
        candidate.volume_24h_usd >= settings.min_volume_24h_usd
        or candidate.liquidity_usd >= settings.min_liquidity_usd
    )


def confidence_for(mode: QueryMode, winner: Optional[Candidate]) -> int:
    if winner is None:
        return FALLBACK_CONFIDENCE[mode]
    confidence = BASE_CONFIDENCE[mode]
    if winner.venue_score > 0:
        confidence += 1
    if winner.trending_boost > 0:
        confidence += 1
    return min(confidence, 100)


@dataclass
class Selection:
    winner: Optional[Candidate]
    reason: OutcomeReason
    considered: int = 0
    cluster: Optional[AddressCluster] = None


def select(candidates: Sequence[Candidate], settings: Optional[Settings] = None) -> Selection:
    """Cluster, pick, and guard a merged candidate list."""

    settings = settings or default_settings
    if not candidates:
        return Selection(winner=None, reason=OutcomeReason.NO_CANDIDATES)

    ordered = sort_candidates(candidates, settings)
    cluster = pick_cluster(cluster_by_address(ordered, settings))
    winner = pick_best_for_ticker(cluster.candidates, settings) if cluster else None
    if winner is None:
        return Selection(winner=None, reason=OutcomeReason.NO_CANDIDATES, considered=len(ordered))
    if not passes_guard(winner, settings):
        return Selection(
            winner=None,
            reason=OutcomeReason.BELOW_LIQUIDITY_GUARD,
            considered=len(ordered),
            cluster=cluster,
        )
    return Selection(winner=winner, reason=OutcomeReason.RESOLVED, considered=len(ordered), cluster=cluster)


__all__ = [
    "AddressCluster",
    "BASE_CONFIDENCE",
    "FALLBACK_CONFIDENCE",
    "Selection",
    "cluster_by_address",
    "composite_score",
    "confidence_for",
    "passes_guard",
    "pick_best_for_ticker",
    "pick_cluster",
    "select",
    "sort_candidates",
]

"""Value types shared by the token identity resolution pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional

from ..address import classify

_WHITESPACE_RE = re.compile(r"\s+")


class QueryMode(str, Enum):
    """Which kind of mention a query came from."""

    TICKER = "ticker"
    ADDRESS = "address"
    NAME = "name"


class OutcomeReason(str, Enum):
    """Why a query ended up with the identity it has."""

    RESOLVED = "resolved"
    NO_CANDIDATES = "no_candidates"
    BELOW_LIQUIDITY_GUARD = "below_liquidity_guard"
    NOT_AN_ADDRESS = "not_an_address"
    CANCELLED = "cancelled"


def normalize_ticker(raw: Optional[str]) -> str:
    return (raw or "").strip().lstrip("$").strip().lower()


def normalize_phrase(raw: Optional[str]) -> str:
    return _WHITESPACE_RE.sub(" ", (raw or "").strip()).lower()


@dataclass(frozen=True)
class ResolutionQuery:
    """One normalized mention to resolve.

    ``key`` is the normalized form used as the output map key; ``raw`` keeps the
    caller's text (trimmed) for display fallbacks.
    """

    mode: QueryMode
    raw: str
    key: str

    @classmethod
    def ticker(cls, raw: Optional[str]) -> Optional["ResolutionQuery"]:
        key = normalize_ticker(raw)
        if not key:
            return None
        return cls(QueryMode.TICKER, (raw or "").strip(), key)

    @classmethod
    def address(cls, raw: Optional[str]) -> Optional["ResolutionQuery"]:
        info = classify(raw)
        if not info.canonical:
            return None
        return cls(QueryMode.ADDRESS, (raw or "").strip(), info.canonical)

    @classmethod
    def name(cls, raw: Optional[str]) -> Optional["ResolutionQuery"]:
        key = normalize_phrase(raw)
        if not key:
            return None
        return cls(QueryMode.NAME, _WHITESPACE_RE.sub(" ", (raw or "").strip()), key)

    @classmethod
    def build(cls, mode: QueryMode, raw: Optional[str]) -> Optional["ResolutionQuery"]:
        if mode is QueryMode.TICKER:
            return cls.ticker(raw)
        if mode is QueryMode.ADDRESS:
            return cls.address(raw)
        return cls.name(raw)


@dataclass
class Candidate:
    """One side of one liquidity pool that matched a query."""

    address: str
    symbol: str
    name: str
    venue_name: str
    venue_score: int
    volume_24h_usd: float
    liquidity_usd: float
    market_cap_usd: float
    quote_symbol: str
    trending_boost: float = 0.0
    network: str = ""
    query: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "name": self.name,
            "venue_name": self.venue_name,
            "venue_score": self.venue_score,
            "volume_24h_usd": self.volume_24h_usd,
            "liquidity_usd": self.liquidity_usd,
            "market_cap_usd": self.market_cap_usd,
            "quote_symbol": self.quote_symbol,
            "trending_boost": self.trending_boost,
            "network": self.network,
            "query": self.query,
        }


@dataclass(frozen=True)
class TokenIdentity:
    token_key: str
    token_display: str
    confidence: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_key": self.token_key,
            "token_display": self.token_display,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class TrendingSet:
    """Trending addresses and lowercase symbols for one resolution batch."""

    addresses: FrozenSet[str] = field(default_factory=frozenset)
    symbols: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def empty(cls) -> "TrendingSet":
        return cls()

    @classmethod
    def of(cls, addresses: Iterable[str] = (), symbols: Iterable[str] = ()) -> "TrendingSet":
        return cls(
            addresses=frozenset(a for a in addresses if a),
            symbols=frozenset(s.lower() for s in symbols if s),
        )

    def union(self, other: "TrendingSet") -> "TrendingSet":
        return TrendingSet(self.addresses | other.addresses, self.symbols | other.symbols)

    def boost_for(self, address: str, symbol: str) -> float:
        boost = 1.0 if address in self.addresses else 0.0
        if symbol and symbol.lower() in self.symbols:
            boost += 0.5
        return boost

    def __bool__(self) -> bool:
        return bool(self.addresses or self.symbols)


@dataclass
class ResolutionOutcome:
    """A query's identity together with the evidence behind it."""

    query: ResolutionQuery
    identity: TokenIdentity
    reason: OutcomeReason
    winner: Optional[Candidate] = None
    candidates_considered: int = 0

    @property
    def resolved(self) -> bool:
        return self.reason is OutcomeReason.RESOLVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query.key,
            "mode": self.query.mode.value,
            "reason": self.reason.value,
            "candidates_considered": self.candidates_considered,
            "winner": self.winner.to_dict() if self.winner else None,
            **self.identity.to_dict(),
        }


__all__ = [
    "Candidate",
    "OutcomeReason",
    "QueryMode",
    "ResolutionOutcome",
    "ResolutionQuery",
    "TokenIdentity",
    "TrendingSet",
    "normalize_phrase",
    "normalize_ticker",
]

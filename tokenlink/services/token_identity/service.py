"""
Token identity resolution facade.

Maps batches of tickers, contract addresses and name phrases to canonical
on-chain token identities:
- fan-out of pool searches per query variant and network
- token-search fallback when pool search finds nothing usable
- deterministic ranking with a liquidity guard
- a batch deadline and cancellation event that degrade to fallback identities

The public maps are total: every distinct non-empty input gets an entry.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Dict, Iterable, List, Optional, Sequence, Set

import structlog

from ...config import Settings, settings as default_settings
from ...providers.base import PoolSearchProvider
from ..address import classify, networks_for_address, normalize_network, short_address
from .candidates import build_candidates
from .fallback import TokenCentricFallback
from .models import (
    Candidate,
    OutcomeReason,
    QueryMode,
    ResolutionOutcome,
    ResolutionQuery,
    TokenIdentity,
    TrendingSet,
)
from .ranking import confidence_for, select
from .trending import TrendingSetFetcher

logger = logging.getLogger(__name__)
slog = structlog.stdlib.get_logger("token_identity")

_TRAILING_NOUN_RE = re.compile(r"\s+(?:coin|token)$")


def _display_symbol(symbol: str) -> str:
    cleaned = symbol.strip().lstrip("$").upper()
    return f"${cleaned}" if cleaned else ""


class TokenIdentityService:
    """Resolve mention batches to ``TokenIdentity`` maps."""

    def __init__(
        self,
        provider: Optional[PoolSearchProvider] = None,
        *,
        settings: Optional[Settings] = None,
        trending_fetcher: Optional[TrendingSetFetcher] = None,
    ) -> None:
        self._settings = settings or default_settings
        if provider is None:
            from ...providers.geckoterminal import GeckoTerminalProvider

            provider = GeckoTerminalProvider(settings=self._settings)
        self._provider = provider
        self._trending = trending_fetcher or TrendingSetFetcher(provider, self._settings)
        self._fallback = TokenCentricFallback(provider, self._settings)

    @property
    def provider(self) -> PoolSearchProvider:
        return self._provider

    @property
    def settings(self) -> Settings:
        return self._settings

    # =========================================================================
    # Public API
    # =========================================================================

    async def resolve_tickers(self, symbols: Iterable[str], **options) -> Dict[str, TokenIdentity]:
        outcomes = await self.explain_tickers(symbols, **options)
        return {key: outcome.identity for key, outcome in outcomes.items()}

    async def resolve_addresses(self, addresses: Iterable[str], **options) -> Dict[str, TokenIdentity]:
        outcomes = await self.explain_addresses(addresses, **options)
        return {key: outcome.identity for key, outcome in outcomes.items()}

    async def resolve_name_phrases(self, phrases: Iterable[str], **options) -> Dict[str, TokenIdentity]:
        outcomes = await self.explain_name_phrases(phrases, **options)
        return {key: outcome.identity for key, outcome in outcomes.items()}

    async def explain_tickers(self, symbols: Iterable[str], **options) -> Dict[str, ResolutionOutcome]:
        return await self._run_batch(QueryMode.TICKER, symbols, **options)

    async def explain_addresses(self, addresses: Iterable[str], **options) -> Dict[str, ResolutionOutcome]:
        return await self._run_batch(QueryMode.ADDRESS, addresses, **options)

    async def explain_name_phrases(self, phrases: Iterable[str], **options) -> Dict[str, ResolutionOutcome]:
        return await self._run_batch(QueryMode.NAME, phrases, **options)

    async def resolve_one(self, query: ResolutionQuery, trending: Optional[TrendingSet] = None) -> ResolutionOutcome:
        """Resolve a single normalized query. Upstream failures end as fallbacks."""

        trending = trending or TrendingSet.empty()
        networks = self.networks_for(query)
        if not networks:
            return self._fallback_outcome(query, OutcomeReason.NOT_AN_ADDRESS)

        variants = self.variants_for(query)
        merged = await self._search(query, variants, networks, trending)
        if not merged:
            merged = await self._fallback.candidates(query, variants, networks, trending)

        selection = select(merged, self._settings)
        if selection.winner is None:
            return self._fallback_outcome(query, selection.reason, considered=selection.considered)

        winner = selection.winner
        identity = TokenIdentity(
            token_key=winner.address,
            token_display=self.display_for(query, winner),
            confidence=confidence_for(query.mode, winner),
        )
        return ResolutionOutcome(
            query=query,
            identity=identity,
            reason=OutcomeReason.RESOLVED,
            winner=winner,
            candidates_considered=selection.considered,
        )

    # =========================================================================
    # Query expansion
    # =========================================================================

    def variants_for(self, query: ResolutionQuery) -> List[str]:
        if query.mode is QueryMode.TICKER:
            variants = [query.key, f"${query.key}", *self._settings.aliases_for(query.key)]
        elif query.mode is QueryMode.NAME:
            variants = [query.key, _TRAILING_NOUN_RE.sub("", query.key).strip()]
        else:
            variants = [query.key]
        return [v for v in dict.fromkeys(variants) if v]

    def networks_for(self, query: ResolutionQuery) -> List[str]:
        if query.mode is QueryMode.ADDRESS:
            info = classify(query.key)
            networks = networks_for_address(info, self._settings.networks, self._settings.evm_networks)
        else:
            networks = self._settings.networks
        return list(dict.fromkeys(normalize_network(n) for n in networks))

    def display_for(self, query: ResolutionQuery, winner: Optional[Candidate]) -> str:
        if query.mode is QueryMode.TICKER:
            return f"${query.key.upper()}"
        symbol = _display_symbol(winner.symbol) if winner else ""
        if symbol:
            return symbol
        if query.mode is QueryMode.ADDRESS:
            return short_address(query.key)
        return query.raw

    # =========================================================================
    # Internals
    # =========================================================================

    async def _search(
        self,
        query: ResolutionQuery,
        variants: Sequence[str],
        networks: Sequence[str],
        trending: TrendingSet,
    ) -> List[Candidate]:
        pairs = [(variant, network) for variant in variants for network in networks]
        payloads = await asyncio.gather(*(self._provider.search_pools(v, n) for v, n in pairs))

        merged: List[Candidate] = []
        for (variant, network), payload in zip(pairs, payloads):
            match_text = variant if query.mode is QueryMode.NAME else query.key
            merged.extend(
                build_candidates(
                    payload,
                    match_text,
                    query.mode,
                    network=network,
                    trending=trending,
                    settings=self._settings,
                    variant=variant,
                )
            )
        return merged

    def _fallback_outcome(self, query: ResolutionQuery, reason: OutcomeReason, considered: int = 0) -> ResolutionOutcome:
        identity = TokenIdentity(
            token_key=query.key,
            token_display=self.display_for(query, None),
            confidence=confidence_for(query.mode, None),
        )
        return ResolutionOutcome(query=query, identity=identity, reason=reason, candidates_considered=considered)

    async def _resolve_safely(self, query: ResolutionQuery, trending: TrendingSet) -> ResolutionOutcome:
        try:
            return await self.resolve_one(query, trending)
        except Exception:
            logger.error(f"Resolution failed for {query.mode.value} {query.key!r}", exc_info=True)
            return self._fallback_outcome(query, OutcomeReason.NO_CANDIDATES)

    async def _load_trending(self, deadline: float, cancel_waiter: Optional["asyncio.Future"]) -> TrendingSet:
        if not self._settings.enable_trending:
            return TrendingSet.empty()
        loop = asyncio.get_running_loop()
        fetch = asyncio.ensure_future(self._trending.fetch_many(self._settings.networks))
        watched = {fetch} if cancel_waiter is None else {fetch, cancel_waiter}
        try:
            await asyncio.wait(watched, timeout=max(deadline - loop.time(), 0.001), return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not fetch.done():
                fetch.cancel()
                await asyncio.gather(fetch, return_exceptions=True)

        if not fetch.cancelled():
            return fetch.result()
        if cancel_waiter is not None and cancel_waiter.done():
            logger.info("Batch cancelled during trending fetch; ranking without trending boost")
        else:
            logger.warning("Trending fetch timed out; ranking without trending boost")
        return TrendingSet.empty()

    async def _run_batch(
        self,
        mode: QueryMode,
        raws: Iterable[str],
        *,
        trending: Optional[TrendingSet] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Dict[str, ResolutionOutcome]:
        queries: Dict[str, ResolutionQuery] = {}
        for raw in raws:
            query = ResolutionQuery.build(mode, raw)
            if query is not None and query.key not in queries:
                queries[query.key] = query
        if not queries:
            return {}

        loop = asyncio.get_running_loop()
        started = time.perf_counter()
        budget = self._settings.batch_timeout_seconds if timeout is None else timeout
        deadline = loop.time() + max(budget, 0.0)

        cancel_waiter = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None
        tasks: Dict[str, "asyncio.Future[ResolutionOutcome]"] = {}
        remaining: Set["asyncio.Future[ResolutionOutcome]"] = set()

        try:
            if cancel_event is not None and cancel_event.is_set():
                batch_trending = TrendingSet.empty()
            elif trending is not None:
                batch_trending = trending
            else:
                batch_trending = await self._load_trending(deadline, cancel_waiter)

            semaphore = asyncio.Semaphore(self._settings.max_concurrent_queries)

            async def worker(q: ResolutionQuery) -> ResolutionOutcome:
                async with semaphore:
                    return await self._resolve_safely(q, batch_trending)

            tasks = {key: asyncio.ensure_future(worker(q)) for key, q in queries.items()}
            remaining = set(tasks.values())

            while remaining:
                if cancel_event is not None and cancel_event.is_set():
                    break
                left = deadline - loop.time()
                if left <= 0:
                    break
                watched = set(remaining)
                if cancel_waiter is not None:
                    watched.add(cancel_waiter)
                done, _ = await asyncio.wait(watched, timeout=left, return_when=asyncio.FIRST_COMPLETED)
                remaining -= done
        finally:
            for task in remaining:
                task.cancel()
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if remaining:
            await asyncio.gather(*remaining, return_exceptions=True)

        outcomes: Dict[str, ResolutionOutcome] = {}
        for key, query in queries.items():
            task = tasks.get(key)
            if task is None or task.cancelled():
                outcomes[key] = self._fallback_outcome(query, OutcomeReason.CANCELLED)
            else:
                outcomes[key] = task.result()

        self._log_batch(mode, outcomes, started, cancelled=len(remaining))
        return outcomes

    def _log_batch(self, mode: QueryMode, outcomes: Dict[str, ResolutionOutcome], started: float, cancelled: int) -> None:
        reasons: Dict[str, int] = {}
        for outcome in outcomes.values():
            reasons[outcome.reason.value] = reasons.get(outcome.reason.value, 0) + 1
        slog.info(
            "token_resolution_batch",
            mode=mode.value,
            queries=len(outcomes),
            resolved=reasons.get(OutcomeReason.RESOLVED.value, 0),
            cancelled=cancelled,
            reasons=reasons,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )


# Module-level singleton for convenience
_default_service: Optional[TokenIdentityService] = None


def get_token_identity_service(provider: Optional[PoolSearchProvider] = None) -> TokenIdentityService:
    """
    Get or create the default TokenIdentityService instance.

    Args:
        provider: Optional pool search provider; replaces the default service when given.

    Returns:
        TokenIdentityService instance.
    """
    global _default_service
    if _default_service is None or provider is not None:
        _default_service = TokenIdentityService(provider)
    return _default_service


__all__ = [
    "TokenIdentityService",
    "get_token_identity_service",
]

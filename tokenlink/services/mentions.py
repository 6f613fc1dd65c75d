"""
Mention detection for KOL posts.

Finds token mentions in free text and links them to token identities:
- Solana contract addresses, including ones split across a pump.fun link or
  broken by whitespace
- ``$TICKER`` cashtags
- "<name> coin" phrases

Resolution goes through :class:`TokenIdentityService` in three batches (tickers,
names, addresses) regardless of how many texts are scanned.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .address import canonical_address, short_address
from .token_identity.models import ResolutionOutcome, normalize_phrase
from .token_identity.service import TokenIdentityService

logger = logging.getLogger(__name__)

_BASE58 = "1-9A-HJ-NP-Za-km-z"

ADDRESS_RE = re.compile(rf"\b[{_BASE58}]{{32,44}}\b")
CASHTAG_RE = re.compile(r"\$[A-Za-z][A-Za-z0-9]{1,9}\b")
NAME_COIN_RE = re.compile(r"\b([a-z][a-z0-9-]{2,20}(?:\s+[a-z][a-z0-9-]{2,20})?)\s+coin\b", re.IGNORECASE)

_PUMP_FUN_RE = re.compile(r"pump\.fun/coin/(\S{1,90})", re.IGNORECASE)
_SPLIT_PAIR_RE = re.compile(rf"\b([{_BASE58}]{{8,20}})\s+([{_BASE58}]{{16,44}})\b")
_BASE58_RUN_RE = re.compile(rf"[{_BASE58}]{{2,}}")
_NON_BASE58_RE = re.compile(rf"[^{_BASE58}]+")
_FULL_ADDRESS_RE = re.compile(rf"[{_BASE58}]{{32,44}}")

ADDRESS_CONFIDENCE = 100
TICKER_CONFIDENCE = 95
PHRASE_CONFIDENCE = 70

PHRASE_KEY_MAX = 64
TRIGGER_TEXT_MAX = 256


class MentionSource(str, Enum):
    CA = "ca"
    TICKER = "ticker"
    PHRASE = "phrase"


@dataclass(frozen=True)
class Mention:
    token_key: str
    token_display: str
    source: MentionSource
    confidence: int


@dataclass
class ResolvedMention:
    """One detected mention in one text, linked to a token identity."""

    text_id: str
    token_key: str
    token_display: str
    confidence: int
    source: MentionSource
    trigger_key: str
    trigger_text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text_id": self.text_id,
            "token_key": self.token_key,
            "token_display": self.token_display,
            "confidence": self.confidence,
            "source": self.source.value,
            "trigger_key": self.trigger_key,
            "trigger_text": self.trigger_text,
        }


@dataclass
class MentionScan:
    rows: List[ResolvedMention] = field(default_factory=list)
    scanned_texts: int = 0
    tickers: int = 0
    names: int = 0
    addresses: int = 0


# =============================================================================
# Extraction
# =============================================================================


def _phrase_key(display: str) -> str:
    return normalize_phrase(display)[:PHRASE_KEY_MAX]


def extract_mentions(text: Optional[str]) -> List[Mention]:
    """Detect addresses, cashtags and "<name> coin" phrases in one text.

    Mentions sharing a key collapse into one, preferring an address and then
    the higher confidence. Output follows first appearance of each key.
    """

    if not text:
        return []

    found: List[Mention] = []
    for match in ADDRESS_RE.finditer(text):
        address = match.group(0)
        found.append(Mention(address, address, MentionSource.CA, ADDRESS_CONFIDENCE))

    for match in CASHTAG_RE.finditer(text):
        tag = match.group(0)
        found.append(Mention(tag[1:].lower(), tag, MentionSource.TICKER, TICKER_CONFIDENCE))

    for match in NAME_COIN_RE.finditer(text):
        display = match.group(1).strip()
        key = _phrase_key(display)
        if key:
            found.append(Mention(key, display, MentionSource.PHRASE, PHRASE_CONFIDENCE))

    return _dedupe(found)


def _dedupe(mentions: Iterable[Mention]) -> List[Mention]:
    best: Dict[str, Mention] = {}
    for mention in mentions:
        current = best.get(mention.token_key)
        if current is None or _preference(mention) > _preference(current):
            best[mention.token_key] = mention
    return list(best.values())


def _preference(mention: Mention) -> Tuple[int, int]:
    return (1 if mention.source is MentionSource.CA else 0, mention.confidence)


def _from_pump_fun(text: str) -> List[str]:
    out: List[str] = []
    for match in _PUMP_FUN_RE.finditer(text):
        tail = _NON_BASE58_RE.sub("", match.group(1))
        if not 32 <= len(tail) <= 44:
            rest = text[match.end() : match.end() + 160]
            tail = (tail + "".join(_BASE58_RUN_RE.findall(rest)))[:44]
        if _FULL_ADDRESS_RE.fullmatch(tail):
            out.append(tail)
    return out


def _from_split_pairs(text: str) -> List[str]:
    out: List[str] = []
    for match in _SPLIT_PAIR_RE.finditer(text):
        joined = match.group(1) + match.group(2)
        if _FULL_ADDRESS_RE.fullmatch(joined):
            out.append(joined)
    return out


def reconstruct_addresses(text: Optional[str]) -> List[str]:
    """Addresses in ``text``, including ones split by links or whitespace.

    Only maximal addresses are kept: a candidate contained in a longer one is
    dropped.
    """

    if not text:
        return []
    found = list(
        dict.fromkeys(
            [m.group(0) for m in ADDRESS_RE.finditer(text)] + _from_pump_fun(text) + _from_split_pairs(text)
        )
    )
    return [a for a in found if not any(a != b and a in b for b in found)]


def mentions_for_text(text: Optional[str]) -> List[Mention]:
    """Extraction with reconstructed addresses replacing plain address hits."""

    mentions = extract_mentions(text)
    rebuilt = reconstruct_addresses(text)
    if not rebuilt:
        return mentions
    mentions = [m for m in mentions if m.source is not MentionSource.CA]
    mentions.extend(Mention(a, a, MentionSource.CA, ADDRESS_CONFIDENCE) for a in rebuilt)
    return mentions


# =============================================================================
# Trigger keys
# =============================================================================


def trigger_for(mention: Mention) -> Tuple[str, str]:
    """Deterministic ``(key, text)`` identifying what triggered a mention."""

    if mention.source is MentionSource.CA:
        address = canonical_address(mention.token_key)
        return (f"ca:{address}" if address else "ca:unknown"), address
    if mention.source is MentionSource.TICKER:
        text = f"${mention.token_key.lstrip('$').lower()}"
        return f"ticker:{text}", text
    text = normalize_phrase(mention.token_display or mention.token_key)[:TRIGGER_TEXT_MAX]
    return "phrase:" + hashlib.sha1(text.encode("utf-8")).hexdigest(), text


def trigger_key(mention: Mention) -> str:
    return trigger_for(mention)[0]


# =============================================================================
# Resolution
# =============================================================================


class MentionResolver:
    """Extract mentions from many texts and resolve them in three batches."""

    def __init__(self, service: TokenIdentityService) -> None:
        self._service = service

    async def scan(self, texts: Mapping[str, Optional[str]], **options) -> MentionScan:
        """Resolve every mention in ``texts``. A ``timeout`` option bounds all three batches together."""

        loop = asyncio.get_running_loop()
        timeout = options.pop("timeout", None)
        budget = self._service.settings.batch_timeout_seconds if timeout is None else timeout
        deadline = loop.time() + max(budget, 0.0)

        def within_deadline() -> Dict[str, Any]:
            return {**options, "timeout": max(deadline - loop.time(), 0.0)}

        extracted: List[Tuple[str, Mention]] = []
        tickers: Set[str] = set()
        names: Set[str] = set()
        addresses: Set[str] = set()

        for text_id, text in texts.items():
            for mention in mentions_for_text(text):
                extracted.append((text_id, mention))
                if mention.source is MentionSource.CA:
                    addresses.add(canonical_address(mention.token_key))
                elif mention.source is MentionSource.TICKER:
                    tickers.add(mention.token_key)
                else:
                    names.add(mention.token_key)

        logger.info(f"Extracted {len(tickers)} tickers, {len(names)} names, {len(addresses)} addresses")

        by_ticker = await self._service.explain_tickers(sorted(tickers), **within_deadline()) if tickers else {}
        by_name = await self._service.explain_name_phrases(sorted(names), **within_deadline()) if names else {}

        by_address: Dict[str, ResolutionOutcome] = {
            outcome.identity.token_key: outcome for outcome in by_ticker.values() if outcome.resolved
        }
        missing = sorted(a for a in addresses if a not in by_address)
        if missing:
            by_address.update(await self._service.explain_addresses(missing, **within_deadline()))

        rows: List[ResolvedMention] = []
        seen: Set[Tuple[str, str]] = set()
        for text_id, mention in extracted:
            row = self._row(text_id, mention, by_ticker, by_name, by_address)
            if row is None or (text_id, row.trigger_key) in seen:
                continue
            seen.add((text_id, row.trigger_key))
            rows.append(row)

        return MentionScan(
            rows=rows,
            scanned_texts=len(texts),
            tickers=len(tickers),
            names=len(names),
            addresses=len(addresses),
        )

    async def resolve_texts(self, texts: Mapping[str, Optional[str]], **options) -> List[ResolvedMention]:
        return (await self.scan(texts, **options)).rows

    @staticmethod
    def _row(
        text_id: str,
        mention: Mention,
        by_ticker: Mapping[str, ResolutionOutcome],
        by_name: Mapping[str, ResolutionOutcome],
        by_address: Mapping[str, ResolutionOutcome],
    ) -> Optional[ResolvedMention]:
        key, text = trigger_for(mention)
        token_key = mention.token_key
        display = mention.token_display
        confidence = mention.confidence

        if mention.source is MentionSource.CA:
            token_key = canonical_address(mention.token_key)
            outcome = by_address.get(token_key)
            if outcome is not None and outcome.resolved:
                display = outcome.identity.token_display
                confidence = max(confidence, outcome.identity.confidence)
            else:
                display = short_address(token_key)
        elif mention.source is MentionSource.TICKER:
            outcome = by_ticker.get(mention.token_key)
            if outcome is not None:
                token_key = outcome.identity.token_key
                display = outcome.identity.token_display
                confidence = max(confidence, outcome.identity.confidence)
        else:
            outcome = by_name.get(mention.token_key)
            if outcome is None or not outcome.resolved:
                return None
            token_key = outcome.identity.token_key
            display = outcome.identity.token_display
            confidence = max(confidence, outcome.identity.confidence)

        return ResolvedMention(
            text_id=text_id,
            token_key=token_key,
            token_display=display,
            confidence=min(100, max(0, int(round(confidence)))),
            source=mention.source,
            trigger_key=key,
            trigger_text=text,
        )


__all__ = [
    "Mention",
    "MentionResolver",
    "MentionScan",
    "MentionSource",
    "ResolvedMention",
    "extract_mentions",
    "mentions_for_text",
    "reconstruct_addresses",
    "trigger_for",
    "trigger_key",
]

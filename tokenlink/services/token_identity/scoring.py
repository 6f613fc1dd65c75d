"""Tolerant field readers and scoring primitives for GeckoTerminal payloads.

Upstream JSON is loosely shaped: numbers arrive as strings, fields go
missing, whole objects are sometimes ``null``. Every conversion here is
explicit so that "missing" always means ``0`` or ``""`` and never depends on
truthiness of whatever happened to be there.
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping, Optional, Sequence, Set, Tuple

DICE_THRESHOLD = 0.28

_VOLUME_WINDOWS = ("h24", "h6", "h1", "m5")
_DICE_STRIP_RE = re.compile(r"[^a-z0-9]")


def to_number(value: Any) -> float:
    """Finite float from an int, float or numeric string; ``0.0`` otherwise."""

    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def strip_dollar(value: Any) -> str:
    return to_text(value).lstrip("$").lower()


def pick_volume(volume_usd: Any) -> float:
    """24h volume, falling back to shorter windows when h24 is missing or zero."""

    windows = as_mapping(volume_usd)
    for window in _VOLUME_WINDOWS:
        number = to_number(windows.get(window))
        if number:
            return number
    return 0.0


def pick_pool_market_cap(pool_attrs: Any) -> float:
    attrs = as_mapping(pool_attrs)
    return to_number(attrs.get("market_cap_usd")) or to_number(attrs.get("fdv_usd"))


def pick_token_market_cap(token_attrs: Any) -> float:
    attrs = as_mapping(token_attrs)
    return to_number(attrs.get("market_cap_usd")) or to_number(attrs.get("fdv_usd"))


def venue_priority(venue_name: str, venues: Sequence[Tuple[str, int]]) -> int:
    """Priority of the first allow-listed venue contained in the name, else 0."""

    lowered = (venue_name or "").lower()
    if not lowered:
        return 0
    for needle, priority in venues:
        if needle and needle in lowered:
            return priority
    return 0


def quote_preference(quote_symbol: str, preferences: Mapping[str, int]) -> int:
    return int(preferences.get((quote_symbol or "").upper(), 0))


def _bigrams(text: str) -> Set[str]:
    return {text[i : i + 2] for i in range(len(text) - 1)}


def dice(a: Optional[str], b: Optional[str]) -> float:
    """Bigram Dice coefficient over lowercase ``[a-z0-9]`` characters."""

    left = _DICE_STRIP_RE.sub("", (a or "").lower())
    right = _DICE_STRIP_RE.sub("", (b or "").lower())
    if not left or not right:
        return 0.0
    left_grams = _bigrams(left)
    right_grams = _bigrams(right)
    total = len(left_grams) + len(right_grams)
    if total == 0:
        return 0.0
    return 2.0 * len(left_grams & right_grams) / total


def fuzzy_match(query: str, surface: str, threshold: float = DICE_THRESHOLD) -> bool:
    """Substring or bigram-similarity match of a lowercase query against text."""

    if not surface or not query:
        return False
    return query in surface.lower() or dice(query, surface) >= threshold


__all__ = [
    "DICE_THRESHOLD",
    "as_mapping",
    "dice",
    "fuzzy_match",
    "pick_pool_market_cap",
    "pick_token_market_cap",
    "pick_volume",
    "quote_preference",
    "strip_dollar",
    "to_number",
    "to_text",
    "venue_priority",
]

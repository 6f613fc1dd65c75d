"""Helpers for classifying chain addresses and normalizing network identifiers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import List, Sequence

_BASE58_ALPHABET = set("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

BASE58_MIN_LENGTH = 32
BASE58_MAX_LENGTH = 64

SOLANA_NETWORK = "solana"

# GeckoTerminal network slugs keyed by the names people actually type.
_NETWORK_ALIASES = {
    "sol": "solana",
    "solana": "solana",
    "eth": "eth",
    "ethereum": "eth",
    "mainnet": "eth",
    "base": "base",
    "base-mainnet": "base",
    "bsc": "bsc",
    "bnb": "bsc",
    "polygon": "polygon_pos",
    "matic": "polygon_pos",
    "polygon_pos": "polygon_pos",
    "arbitrum": "arbitrum",
    "arb": "arbitrum",
    "optimism": "optimism",
    "op": "optimism",
    "avalanche": "avax",
    "avax": "avax",
    "fantom": "ftm",
    "ftm": "ftm",
}

_BASE58_NETWORKS = {SOLANA_NETWORK}


class AddressKind(str, Enum):
    """Shape of a chain address."""

    EVM = "evm"
    BASE58 = "base58"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class AddressInfo:
    kind: AddressKind
    canonical: str

    @property
    def is_address(self) -> bool:
        return self.kind is not AddressKind.UNKNOWN


def is_evm_address(value: str) -> bool:
    return bool(value) and bool(_EVM_ADDRESS_RE.fullmatch(value))


@lru_cache(maxsize=1024)
def is_base58_address(value: str) -> bool:
    if not value:
        return False
    length = len(value)
    if length < BASE58_MIN_LENGTH or length > BASE58_MAX_LENGTH:
        return False
    return all(ch in _BASE58_ALPHABET for ch in value)


def classify(raw: str | None) -> AddressInfo:
    """Classify an address-like string and return its canonical form.

    EVM addresses are case-insensitive and canonicalize to lowercase. Base58
    addresses (Solana mints) keep their casing because the chain treats it as
    significant. Anything else is ``UNKNOWN`` with the trimmed input as its
    canonical form. Never raises.
    """

    value = (raw or "").strip()
    if is_evm_address(value):
        return AddressInfo(AddressKind.EVM, value.lower())
    if is_base58_address(value):
        return AddressInfo(AddressKind.BASE58, value)
    return AddressInfo(AddressKind.UNKNOWN, value)


def canonical_address(raw: str | None) -> str:
    return classify(raw).canonical


def normalize_network(network: str | None) -> str:
    """Collapse user-provided network identifiers into GeckoTerminal slugs."""

    if not network:
        return SOLANA_NETWORK
    slug = network.lower().strip()
    return _NETWORK_ALIASES.get(slug, slug)


def is_base58_network(network: str) -> bool:
    return normalize_network(network) in _BASE58_NETWORKS


def is_valid_address_for_network(address: str, network: str) -> bool:
    if not address:
        return False
    if is_base58_network(network):
        return is_base58_address(address)
    return is_evm_address(address)


def networks_for_address(info: AddressInfo, networks: Sequence[str], evm_networks: Sequence[str]) -> List[str]:
    """Networks worth searching for an address of the given shape."""

    if info.kind is AddressKind.BASE58:
        base58 = [n for n in networks if is_base58_network(n)]
        return base58 or [SOLANA_NETWORK]
    if info.kind is AddressKind.EVM:
        return [n for n in evm_networks if not is_base58_network(n)]
    return []


def short_address(address: str) -> str:
    """Display form such as ``$AbCd…wxyz`` for tokens without a usable symbol."""

    if not address:
        return "$????"
    if len(address) <= 8:
        return f"${address}"
    return f"${address[:4]}…{address[-4:]}"


__all__ = [
    "AddressInfo",
    "AddressKind",
    "SOLANA_NETWORK",
    "canonical_address",
    "classify",
    "is_base58_address",
    "is_base58_network",
    "is_evm_address",
    "is_valid_address_for_network",
    "networks_for_address",
    "normalize_network",
    "short_address",
]

from pathlib import Path
from typing import Any, Dict, List, Tuple

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="auto", description="Log renderer: json, console or auto")

    # GeckoTerminal
    geckoterminal_base_url: str = Field(
        default="https://api.geckoterminal.com/api/v2",
        description="Base URL for the GeckoTerminal public API",
        validation_alias=AliasChoices("geckoterminal_base_url", "GECKOTERMINAL_BASE_URL", "GECKOTERMINAL_BASE"),
    )
    search_page_size: int = Field(default=50, ge=1, le=100, description="Rows requested per search call")

    # Rate Limiting
    max_concurrent_requests: int = Field(
        default=3,
        ge=1,
        description="Max concurrent upstream API requests",
        validation_alias=AliasChoices("max_concurrent_requests", "MAX_CONCURRENT_REQUESTS", "GT_MAX_CONCURRENCY"),
    )
    max_concurrent_queries: int = Field(default=4, ge=1, description="Max queries resolved at once per batch")
    request_timeout_seconds: float = Field(default=8.0, gt=0, description="Request timeout")
    max_retries: int = Field(
        default=0,
        ge=0,
        le=5,
        description="Retries on 429/5xx for search calls (0 disables retrying); trending lookups never retry",
        validation_alias=AliasChoices("max_retries", "GT_MAX_RETRIES"),
    )
    batch_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Deadline for one resolution batch; unresolved queries fall back when it passes",
    )

    # Cache Settings
    response_cache_ttl_seconds: int = Field(default=30, ge=0, description="TTL for cached upstream responses")
    max_cache_size: int = Field(default=1000, description="Maximum cache size")

    # Acceptance guard
    min_volume_24h_usd: float = Field(
        default=1_000.0,
        ge=0,
        description="Minimum 24h volume for a winning pool",
        validation_alias=AliasChoices("min_volume_24h_usd", "MIN_VOLUME_24H_USD", "GT_MIN_VOL24H_USD"),
    )
    min_liquidity_usd: float = Field(
        default=5_000.0,
        ge=0,
        description="Minimum liquidity for a winning pool",
        validation_alias=AliasChoices("min_liquidity_usd", "MIN_LIQUIDITY_USD", "GT_MIN_LIQ_USD"),
    )

    # Ranking tables
    ticker_aliases: Dict[str, List[str]] = Field(
        default_factory=lambda: {"wif": ["dogwifhat"]},
        description="Per-ticker alias table; aliases are matched in both directions",
    )
    venue_priorities: List[Tuple[str, int]] = Field(
        default_factory=lambda: [("pump", 3), ("raydium", 2), ("meteora", 1)],
        description="Ordered (substring, priority) allow-list of DEX venues",
    )
    quote_preferences: Dict[str, int] = Field(
        default_factory=lambda: {"SOL": 2, "WSOL": 2, "USDC": 1},
        description="Quote asset preference; native asset above stablecoin",
    )
    accepted_quote_symbols: List[str] = Field(
        default_factory=lambda: ["SOL", "WSOL", "USDC"],
        description="Quote assets a pool must be paired with to count",
    )

    # Networks
    networks: List[str] = Field(
        default_factory=lambda: ["solana"],
        description="GeckoTerminal networks searched for tickers and name phrases",
    )
    evm_networks: List[str] = Field(
        default_factory=lambda: ["base", "eth", "bsc", "polygon_pos", "arbitrum", "optimism", "avax", "ftm"],
        description="GeckoTerminal networks searched for 0x addresses",
    )

    # Fallback / trending
    fallback_max_tokens: int = Field(default=10, ge=1, description="Tokens inspected by the token-search fallback")
    enable_trending: bool = Field(default=True, description="Use trending pools as a ranking tie-breaker")

    @field_validator("ticker_aliases", mode="after")
    @classmethod
    def _normalize_aliases(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        normalized: Dict[str, List[str]] = {}
        for key, aliases in value.items():
            base = key.strip().lstrip("$").lower()
            if not base:
                continue
            normalized[base] = [a.strip().lstrip("$").lower() for a in aliases if a and a.strip()]
        return normalized

    @field_validator("quote_preferences", mode="after")
    @classmethod
    def _upper_quote_preferences(cls, value: Dict[str, int]) -> Dict[str, int]:
        return {k.strip().upper(): int(v) for k, v in value.items()}

    @field_validator("accepted_quote_symbols", mode="after")
    @classmethod
    def _upper_quote_symbols(cls, value: List[str]) -> List[str]:
        return [s.strip().upper() for s in value if s and s.strip()]

    @field_validator("venue_priorities", mode="after")
    @classmethod
    def _lower_venues(cls, value: List[Tuple[str, int]]) -> List[Tuple[str, int]]:
        return [(name.strip().lower(), int(priority)) for name, priority in value if name.strip()]

    def aliases_for(self, ticker: str) -> List[str]:
        """Aliases of a ticker, looked up in both directions of the alias table."""

        base = ticker.strip().lstrip("$").lower()
        out: List[str] = list(self.ticker_aliases.get(base, []))
        for key, aliases in self.ticker_aliases.items():
            if base in aliases and key not in out:
                out.append(key)
        return [a for a in out if a != base]

    def summary(self) -> Dict[str, Any]:
        return {
            "networks": self.networks,
            "min_volume_24h_usd": self.min_volume_24h_usd,
            "min_liquidity_usd": self.min_liquidity_usd,
            "venues": [name for name, _ in self.venue_priorities],
            "quotes": self.accepted_quote_symbols,
        }


# Global settings instance
settings = Settings()

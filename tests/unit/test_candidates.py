from tokenlink.config import Settings
from tokenlink.services.token_identity.candidates import build_candidates, parse_tokens, parse_venues
from tokenlink.services.token_identity.models import QueryMode, TrendingSet

from tests.gt_fixtures import (
    BONK_MINT,
    PEPE_EVM,
    SOL_MINT,
    USDC_MINT,
    WIF_MINT,
    PayloadBuilder,
    bonk_pool_payload,
)

SETTINGS = Settings(ticker_aliases={"wif": ["dogwifhat"]})


def build(payload, query, mode=QueryMode.TICKER, **kwargs):
    kwargs.setdefault("settings", SETTINGS)
    return build_candidates(payload, query, mode, **kwargs)


class TestPayloadParsing:
    def test_parse_tokens_and_venues(self):
        payload = bonk_pool_payload()
        tokens = parse_tokens(payload)
        venues = parse_venues(payload)

        assert tokens[f"solana_{BONK_MINT}"].symbol == "BONK"
        assert venues == {"pumpswap": "PumpSwap"}

    def test_malformed_payloads_yield_nothing(self):
        assert build(None, "bonk") == []
        assert build({}, "bonk") == []
        assert build({"data": "nope", "included": None}, "bonk") == []
        assert build({"data": [None, 3, "x"], "included": [None]}, "bonk") == []


class TestTickerMode:
    def test_matches_base_side(self):
        [candidate] = build(bonk_pool_payload(), "$bonk")

        assert candidate.address == BONK_MINT
        assert candidate.symbol == "BONK"
        assert candidate.venue_name == "PumpSwap"
        assert candidate.venue_score == 3
        assert candidate.quote_symbol == "SOL"
        assert candidate.volume_24h_usd == 50_000
        assert candidate.liquidity_usd == 20_000
        assert candidate.network == "solana"
        assert candidate.query == "$bonk"

    def test_dollar_prefixed_symbol_matches(self):
        payload = bonk_pool_payload(symbol="$BONK")
        assert len(build(payload, "bonk")) == 1

    def test_alias_matches(self):
        payload = bonk_pool_payload(symbol="DOGWIFHAT", address=WIF_MINT)
        [candidate] = build(payload, "wif")
        assert candidate.address == WIF_MINT

    def test_symbol_mismatch_dropped(self):
        assert build(bonk_pool_payload(), "wif") == []

    def test_variant_recorded(self):
        [candidate] = build(bonk_pool_payload(), "bonk", variant="$bonk")
        assert candidate.query == "$bonk"


class TestFilters:
    def test_unlisted_venue_rejected_regardless_of_volume(self):
        payload = bonk_pool_payload(dex="Orca", volume=10_000_000, reserve=10_000_000)
        assert build(payload, "bonk") == []

    def test_venue_falls_back_to_dex_name_attribute(self):
        builder = PayloadBuilder()
        base = builder.token("BONK", BONK_MINT)
        quote = builder.token("SOL", SOL_MINT)
        builder.pool(base, quote, None, volume_h24=10, dex_name="Raydium")

        [candidate] = build(builder.build(), "bonk")
        assert candidate.venue_score == 2

    def test_unaccepted_quote_rejected(self):
        builder = PayloadBuilder()
        base = builder.token("BONK", BONK_MINT)
        quote = builder.token("JUP", "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN")
        builder.pool(base, quote, builder.dex("Raydium"), volume_h24=1_000_000)

        assert build(builder.build(), "bonk") == []

    def test_no_valid_address_on_network_rejected(self):
        builder = PayloadBuilder()
        base = builder.token("PEPE", PEPE_EVM)
        quote = builder.token("SOL", "not-an-address")
        builder.pool(base, quote, builder.dex("PumpSwap"), volume_h24=1_000)

        assert build(builder.build(), "pepe", network="solana") == []

    def test_quote_side_can_be_chosen(self):
        builder = PayloadBuilder()
        base = builder.token("USDC", USDC_MINT)
        quote = builder.token("SOL", SOL_MINT)
        builder.pool(base, quote, builder.dex("Meteora"), volume_h24=5)

        [candidate] = build(builder.build(), "sol")
        assert candidate.address == SOL_MINT
        assert candidate.quote_symbol == "SOL"

    def test_one_candidate_per_pool(self):
        builder = PayloadBuilder()
        base = builder.token("SOL", SOL_MINT, name="Wrapped SOL")
        quote = builder.token("SOL", "So11111111111111111111111111111111111111113")
        builder.pool(base, quote, builder.dex("PumpSwap"), volume_h24=5)

        candidates = build(builder.build(), "sol")
        assert [c.address for c in candidates] == [SOL_MINT]


class TestAddressMode:
    def test_matches_by_canonical_address(self):
        [candidate] = build(bonk_pool_payload(), BONK_MINT, QueryMode.ADDRESS)
        assert candidate.address == BONK_MINT
        assert candidate.symbol == "BONK"

    def test_base58_case_matters(self):
        assert build(bonk_pool_payload(), "dEZ" + BONK_MINT[3:], QueryMode.ADDRESS) == []

    def test_evm_case_insensitive(self):
        builder = PayloadBuilder()
        base = builder.token("PEPE", PEPE_EVM.upper().replace("0X", "0x"))
        quote = builder.token("USDC", "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48")
        builder.pool(base, quote, builder.dex("Raydium"), volume_h24=5)

        [candidate] = build(builder.build(), PEPE_EVM, QueryMode.ADDRESS, network="eth")
        assert candidate.address == PEPE_EVM
        assert candidate.network == "eth"


class TestNameMode:
    def test_fuzzy_symbol_or_name_match(self):
        [candidate] = build(bonk_pool_payload(), "bonk coin", QueryMode.NAME)
        assert candidate.address == BONK_MINT

    def test_pair_name_fallback_surface(self):
        builder = PayloadBuilder()
        base = builder.token("XYZ", BONK_MINT, name="")
        quote = builder.token("SOL", SOL_MINT)
        builder.pool(base, quote, builder.dex("PumpSwap"), volume_h24=5, name="Ghostly / SOL")

        [candidate] = build(builder.build(), "ghostly", QueryMode.NAME)
        assert candidate.address == BONK_MINT

    def test_unrelated_name_dropped(self):
        assert build(bonk_pool_payload(), "zzqq", QueryMode.NAME) == []


class TestNumericsAndTrending:
    def test_missing_numerics_become_zero(self):
        builder = PayloadBuilder()
        base = builder.token("BONK", BONK_MINT)
        quote = builder.token("SOL", SOL_MINT)
        builder.pool(base, quote, builder.dex("PumpSwap"), volume_h24=None, reserve=None)

        [candidate] = build(builder.build(), "bonk")
        assert candidate.volume_24h_usd == 0
        assert candidate.liquidity_usd == 0
        assert candidate.market_cap_usd == 0

    def test_market_cap_fallback_chain(self):
        builder = PayloadBuilder()
        base = builder.token("BONK", BONK_MINT, fdv_usd="777")
        quote = builder.token("SOL", SOL_MINT)
        builder.pool(base, quote, builder.dex("PumpSwap"), volume_h24="12", reserve="34")

        [candidate] = build(builder.build(), "bonk")
        assert candidate.market_cap_usd == 777
        assert candidate.volume_24h_usd == 12
        assert candidate.liquidity_usd == 34

    def test_pool_market_cap_wins_over_token(self):
        builder = PayloadBuilder()
        base = builder.token("BONK", BONK_MINT, market_cap_usd=5)
        quote = builder.token("SOL", SOL_MINT)
        builder.pool(base, quote, builder.dex("PumpSwap"), fdv_usd="900")

        [candidate] = build(builder.build(), "bonk")
        assert candidate.market_cap_usd == 900

    def test_trending_boosts_are_additive(self):
        trending = TrendingSet.of([BONK_MINT], ["bonk"])
        [both] = build(bonk_pool_payload(), "bonk", trending=trending)
        [address_only] = build(bonk_pool_payload(), "bonk", trending=TrendingSet.of([BONK_MINT]))
        [symbol_only] = build(bonk_pool_payload(), "bonk", trending=TrendingSet.of([], ["BONK"]))

        assert both.trending_boost == 1.5
        assert address_only.trending_boost == 1.0
        assert symbol_only.trending_boost == 0.5

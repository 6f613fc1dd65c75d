#!/usr/bin/env python3
"""Command line access to token identity resolution"""

import argparse
import asyncio
import json
import sys
from typing import Dict, List, Optional

from tokenlink.logging_config import setup_logging
from tokenlink.services.mentions import MentionResolver
from tokenlink.services.token_identity import ResolutionOutcome, TokenIdentityService


def print_outcomes(outcomes: Dict[str, ResolutionOutcome], explain: bool = False):
    """Pretty print one resolution batch"""
    if not outcomes:
        print("❌ Nothing to resolve")
        return

    print(f"\n🔗 Resolved {len(outcomes)} queries")
    print("=" * 60)
    for key, outcome in outcomes.items():
        identity = outcome.identity
        marker = "✅" if outcome.resolved else "⚠️ "
        print(f"{marker} {key:<24} {identity.token_display:<14} {identity.confidence:>3}  {identity.token_key}")
        if explain:
            print(f"    reason: {outcome.reason.value} ({outcome.candidates_considered} candidates)")
            if outcome.winner:
                w = outcome.winner
                print(
                    f"    pool: {w.venue_name} {w.symbol}/{w.quote_symbol} on {w.network} "
                    f"vol24h=${w.volume_24h_usd:,.0f} liq=${w.liquidity_usd:,.0f} trend={w.trending_boost}"
                )


async def cli_resolve(mode: str, queries: List[str], explain: bool, timeout: Optional[float]):
    """CLI command to resolve tickers, addresses or names"""
    service = TokenIdentityService()
    options = {"timeout": timeout} if timeout else {}
    print(f"🔍 Resolving {len(queries)} {mode}...")
    try:
        if mode == "tickers":
            outcomes = await service.explain_tickers(queries, **options)
        elif mode == "addresses":
            outcomes = await service.explain_addresses(queries, **options)
        else:
            outcomes = await service.explain_name_phrases(queries, **options)
        print_outcomes(outcomes, explain)
    finally:
        await service.provider.close()


async def cli_scan(texts: List[str], as_json: bool, explain: bool, timeout: Optional[float]):
    """CLI command to detect and resolve mentions in texts ("-" reads stdin)"""
    if texts == ["-"] or not texts:
        texts = [line.strip() for line in sys.stdin if line.strip()]

    service = TokenIdentityService()
    options = {"timeout": timeout} if timeout else {}
    try:
        scan = await MentionResolver(service).scan({str(i): t for i, t in enumerate(texts, 1)}, **options)
    finally:
        await service.provider.close()

    if as_json:
        print(json.dumps([row.to_dict() for row in scan.rows], indent=2))
        return

    print(f"\n📡 Scanned {scan.scanned_texts} texts: {scan.tickers} tickers, {scan.names} names, {scan.addresses} addresses")
    print("-" * 60)
    for row in scan.rows:
        print(f"#{row.text_id:<4} {row.source.value:<7} {row.token_display:<14} {row.confidence:>3}  {row.token_key}")
        if explain:
            print(f"      trigger: {row.trigger_key} ({row.trigger_text})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="tokenlink CLI")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--timeout", type=float, default=None, help="Batch deadline in seconds")
    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("tickers", "Resolve $TICKERs to contract addresses"),
        ("addresses", "Resolve contract addresses to symbols"),
        ("names", "Resolve name phrases to tokens"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("queries", nargs="+", help="Values to resolve")
        sub.add_argument("--explain", action="store_true", help="Show winning pool and outcome reason")

    scan_parser = subparsers.add_parser("scan", help="Detect and resolve mentions in texts")
    scan_parser.add_argument("texts", nargs="*", help="Texts to scan, or '-' to read lines from stdin")
    scan_parser.add_argument("--json", action="store_true", help="Print rows as JSON")
    scan_parser.add_argument("--explain", action="store_true", help="Show the trigger key of each row")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.log_level)
    command = args.command.lower()

    if command in ("tickers", "addresses", "names"):
        await cli_resolve(command, args.queries, args.explain, args.timeout)

    elif command == "scan":
        await cli_scan(args.texts, args.json, args.explain, args.timeout)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


if __name__ == "__main__":
    asyncio.run(main())

"""
Main entry point for the social airdrop tool.

Commands:
1. social-airdrop: find users who posted about a token and don't hold it yet
2. fetch: retired, prints a migration notice
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import DEFAULT_TICKER, DEFAULT_TOKEN_ADDRESS, AppConfig, get_settings
from .core.orchestrator import (
    AirdropRunResult,
    build_pipeline,
    default_output_path,
    resolve_search_text,
)
from .exceptions import SocialAirdropError
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

FETCH_DEPRECATION_NOTICE = (
    "\nThe 'fetch' command is deprecated.\n"
    "   Please use the 'social-airdrop' command instead.\n"
    "   Run: python -m social_airdrop social-airdrop --help\n"
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="social-airdrop",
        description="Find Farcaster users who mention a token and check whether they hold it",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    airdrop = subparsers.add_parser(
        "social-airdrop",
        help="Find users who posted about a token and check if they have it",
    )
    airdrop.add_argument(
        "--ticker",
        default=DEFAULT_TICKER,
        help="Token ticker/symbol to search for (e.g. 'elizaOS', 'DEGEN', 'HIGHER')",
    )
    airdrop.add_argument(
        "--search-text",
        help="Custom search text (overrides ticker). Use for exact phrases.",
    )
    airdrop.add_argument(
        "--token-address",
        default=DEFAULT_TOKEN_ADDRESS,
        help="Token contract address on Base chain",
    )
    airdrop.add_argument(
        "--output",
        help="Output CSV filename (defaults to <ticker>_airdrop_eligible.csv)",
    )
    airdrop.add_argument(
        "--no-cache",
        action="store_true",
        help="Disable caching and fetch fresh data",
    )
    airdrop.add_argument("--cache-dir", help="Override the cache directory")
    airdrop.add_argument("--log-level", help="Override the log level (DEBUG, INFO, ...)")

    subparsers.add_parser("fetch", help="Deprecated, use social-airdrop instead")
    return parser


def _mask(secret: str) -> str:
    return f"{secret[:10]}... ({len(secret)} chars)"


def print_summary(result: AirdropRunResult, cache_dir: str) -> None:
    print("\nCOMPLETE")
    print("\nSummary:")
    print(f"   - Total casts found: {result.total_casts}")
    print(f"   - Unique users: {result.unique_users}")
    print(f"   - Eligible for airdrop: {result.eligible_users}")
    print(f"   - CSV records: {result.records_written}")
    if not result.crawl_complete:
        print("   - Note: cast search did not finish; re-run to resume it")
    print(f"\nOutput: {result.output_path}")
    print("\nTip: Run again to use cached data and save time!")
    print(f"   Cache location: {cache_dir}/")


async def run_social_airdrop(args: argparse.Namespace, settings: AppConfig) -> int:
    search_text = resolve_search_text(args.ticker, args.search_text)
    output_path = Path(args.output) if args.output else default_output_path(args.ticker)
    use_cache = not args.no_cache
    if args.cache_dir:
        settings.cache.directory = args.cache_dir

    api_key = settings.neynar.api_key
    if not api_key:
        logger.error("NEYNAR_API_KEY not found in environment variables!")
        print(
            "Make sure you have a .env file with NEYNAR_API_KEY=your_key",
            file=sys.stderr,
        )
        return 1

    logger.info(
        f"Social airdrop search: '{search_text}', token {args.token_address}, "
        f"output {output_path}, cache enabled: {use_cache}"
    )
    logger.info(f"API Key: {_mask(api_key)}")

    try:
        pipeline = build_pipeline(settings, use_cache=use_cache)
    except SocialAirdropError as e:
        logger.error(f"Error: {e}")
        return 1

    try:
        result = await pipeline.run(search_text, args.token_address, output_path)
    except SocialAirdropError as e:
        logger.error(f"Error: {e}")
        return 1
    finally:
        await pipeline.aclose()

    if result.status != "success":
        print(f"\n{result.message}")
        return 0

    print_summary(result, settings.cache.directory)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "fetch":
        print(FETCH_DEPRECATION_NOTICE, file=sys.stderr)
        return 0

    settings = get_settings()
    setup_logging(
        log_level=args.log_level or settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
    )
    return asyncio.run(run_social_airdrop(args, settings))


if __name__ == "__main__":
    sys.exit(main())

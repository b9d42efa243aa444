#!/usr/bin/env python3
"""Quick live check of the indexer, discovery and route quotes.

Usage:
    RUJIRA_NETWORK=mainnet python scripts/verify_markets.py [amount]
"""

import asyncio
import sys

from rujira import RujiraClient, get_settings
from rujira.logging_config import configure_logging

# Colors for output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
RESET = "\033[0m"
CHECK = "✓"
CROSS = "✗"
WARN = "⚠"


def print_status(name: str, success: bool, message: str = ""):
    """Print status with color."""
    if success:
        print(f"  {GREEN}{CHECK}{RESET} {name}" + (f" - {message}" if message else ""))
    else:
        print(f"  {RED}{CROSS}{RESET} {name}" + (f" - {message}" if message else ""))


def print_warning(name: str, message: str = ""):
    print(f"  {YELLOW}{WARN}{RESET} {name}" + (f" - {message}" if message else ""))


async def check_markets(client: RujiraClient) -> bool:
    print("\n📈 Checking indexer markets...")
    markets = await client.discovery.list_markets()
    print_status("Indexer listing", bool(markets), f"{len(markets)} markets")
    for market in markets[:5]:
        print(f"      {market.base_asset}/{market.quote_asset} -> {market.contract_address[:20]}...")
    return bool(markets)


async def check_discovery(client: RujiraClient) -> bool:
    print("\n🔎 Checking contract discovery...")
    try:
        contracts = await client.discovery.discover_contracts(force_refresh=True)
    except Exception as e:
        print_status("Discovery", False, str(e))
        return False

    found = len(contracts.pair_to_address)
    print_status("Discovery", found > 0, f"{found} pairs via {contracts.source.value}")
    if contracts.last_error:
        print_warning("Last error", contracts.last_error)
    return found > 0


async def check_quotes(client: RujiraClient, amount: str) -> bool:
    print(f"\n💱 Quoting every named route for {amount} base units...")
    results = await client.swap.get_all_route_quotes(amount)

    for name, quote in results.items():
        if quote is None:
            print_status(name, False, "no quote")
        else:
            message = f"{quote.expected_output} out, impact {quote.price_impact}"
            print_status(name, True, message)
            if quote.warning:
                print_warning(name, quote.warning)

    return any(results.values())


async def main() -> int:
    amount = sys.argv[1] if len(sys.argv) > 1 else "100000000"
    settings = get_settings()
    configure_logging(settings.debug)

    print("=" * 50)
    print("Rujira market check")
    print("=" * 50)
    for key, value in settings.get_safe_dict().items():
        print(f"  {key}: {value}")

    async with RujiraClient(settings) as client:
        results = {
            "markets": await check_markets(client),
            "discovery": await check_discovery(client),
            "quotes": await check_quotes(client, amount),
        }

    print("\n" + "=" * 50)
    passed = sum(results.values())
    print(f"{passed}/{len(results)} checks passed")
    return 0 if passed == len(results) else 1


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)

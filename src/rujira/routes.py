"""Named swap routes.

Route endpoints are FIN denoms so they can be passed straight to the quote engine.
"""

from dataclasses import dataclass
from typing import Optional

from rujira.assets import KNOWN_ASSETS


@dataclass(frozen=True)
class EasyRoute:
    """A named, commonly traded swap route."""

    from_asset: str
    to_asset: str
    name: str
    description: str
    liquidity: str = "deep"
    typical_time: str = "10-30 seconds"


def _fin(asset_id: str) -> str:
    return KNOWN_ASSETS[asset_id].fin


_BTC_TIME = "10-60 minutes (Bitcoin confirmations)"

EASY_ROUTES: dict[str, EasyRoute] = {
    # RUNE gateway
    "RUNE_TO_USDC": EasyRoute(_fin("rune"), _fin("usdc_eth"), "RUNE → USDC", "Swap RUNE to USDC (Ethereum)"),
    "USDC_TO_RUNE": EasyRoute(_fin("usdc_eth"), _fin("rune"), "USDC → RUNE", "Swap USDC to RUNE"),
    "RUNE_TO_BTC": EasyRoute(_fin("rune"), _fin("btc"), "RUNE → BTC", "Swap RUNE to native Bitcoin", typical_time=_BTC_TIME),
    "BTC_TO_RUNE": EasyRoute(_fin("btc"), _fin("rune"), "BTC → RUNE", "Swap native Bitcoin to RUNE", typical_time=_BTC_TIME),
    "RUNE_TO_ETH": EasyRoute(_fin("rune"), _fin("eth"), "RUNE → ETH", "Swap RUNE to native Ethereum"),
    "ETH_TO_RUNE": EasyRoute(_fin("eth"), _fin("rune"), "ETH → RUNE", "Swap native Ethereum to RUNE"),
    # Stablecoins
    "USDC_TO_USDT": EasyRoute(_fin("usdc_eth"), _fin("usdt_eth"), "USDC → USDT", "Swap USDC to USDT (via RUNE)", typical_time="15-45 seconds"),
    "USDT_TO_USDC": EasyRoute(_fin("usdt_eth"), _fin("usdc_eth"), "USDT → USDC", "Swap USDT to USDC (via RUNE)", typical_time="15-45 seconds"),
    # BTC / stable
    "BTC_TO_USDC": EasyRoute(_fin("btc"), _fin("usdc_eth"), "BTC → USDC", "Swap native Bitcoin to USDC", typical_time=_BTC_TIME),
    "USDC_TO_BTC": EasyRoute(_fin("usdc_eth"), _fin("btc"), "USDC → BTC", "Swap USDC to native Bitcoin", typical_time=_BTC_TIME),
    # ETH / stable
    "ETH_TO_USDC": EasyRoute(_fin("eth"), _fin("usdc_eth"), "ETH → USDC", "Swap ETH to USDC"),
    "USDC_TO_ETH": EasyRoute(_fin("usdc_eth"), _fin("eth"), "USDC → ETH", "Swap USDC to ETH"),
    # Cross-chain
    "BTC_TO_ETH": EasyRoute(_fin("btc"), _fin("eth"), "BTC → ETH", "Swap native Bitcoin to native Ethereum", typical_time=_BTC_TIME),
    "ETH_TO_BTC": EasyRoute(_fin("eth"), _fin("btc"), "ETH → BTC", "Swap native Ethereum to native Bitcoin", typical_time=_BTC_TIME),
}


def list_routes() -> list[dict]:
    """List all named routes as plain dicts."""
    return [
        {
            "id": route_id,
            "name": route.name,
            "from": route.from_asset,
            "to": route.to_asset,
            "description": route.description,
            "liquidity": route.liquidity,
            "typical_time": route.typical_time,
        }
        for route_id, route in EASY_ROUTES.items()
    ]


def get_route(route_name: str) -> Optional[EasyRoute]:
    """Get a route by name."""
    return EASY_ROUTES.get(route_name)


def find_route(from_asset: str, to_asset: str) -> Optional[EasyRoute]:
    """Find the route for a denom pair."""
    from_asset = from_asset.lower()
    to_asset = to_asset.lower()
    for route in EASY_ROUTES.values():
        if route.from_asset == from_asset and route.to_asset == to_asset:
            return route
    return None


def routes_for_asset(asset: str) -> list[EasyRoute]:
    """Get routes that start or end at a denom."""
    asset = asset.lower()
    return [r for r in EASY_ROUTES.values() if asset in (r.from_asset, r.to_asset)]

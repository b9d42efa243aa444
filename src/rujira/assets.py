"""Static asset registry.

Each asset is known under three identifiers:
- L1 ticker (e.g., "BTC")
- THORChain asset (e.g., "BTC.BTC", "ETH.USDC-0XA0B8...")
- FIN denom used by the order-book contracts (e.g., "btc-btc")
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union


@dataclass(frozen=True)
class Asset:
    """A tradable asset and its identifiers."""

    id: str
    name: str
    chain: str
    l1: str
    thorchain: str
    fin: str
    decimals: int = 8  # FIN/THORChain base-unit decimals

    @property
    def ticker(self) -> str:
        return self.l1.upper()


def _asset(id: str, name: str, chain: str, l1: str, thorchain: str, fin: str) -> Asset:
    return Asset(id=id, name=name, chain=chain, l1=l1, thorchain=thorchain, fin=fin)


KNOWN_ASSETS: dict[str, Asset] = {
    # Native L1 assets
    "btc": _asset("btc", "Bitcoin", "bitcoin", "BTC", "BTC.BTC", "btc-btc"),
    "eth": _asset("eth", "Ethereum", "ethereum", "ETH", "ETH.ETH", "eth-eth"),
    "ltc": _asset("ltc", "Litecoin", "litecoin", "LTC", "LTC.LTC", "ltc-ltc"),
    "bch": _asset("bch", "Bitcoin Cash", "bitcoincash", "BCH", "BCH.BCH", "bch-bch"),
    "doge": _asset("doge", "Dogecoin", "dogecoin", "DOGE", "DOGE.DOGE", "doge-doge"),
    "atom": _asset("atom", "Cosmos", "cosmos", "ATOM", "GAIA.ATOM", "gaia-atom"),
    "avax": _asset("avax", "Avalanche", "avalanche", "AVAX", "AVAX.AVAX", "avax-avax"),
    "bnb": _asset("bnb", "BNB Chain", "binance", "BNB", "BSC.BNB", "bsc-bnb"),
    "xrp": _asset("xrp", "XRP Ledger", "xrp", "XRP", "XRP.XRP", "xrp-xrp"),
    "base_eth": _asset("base_eth", "Base Ethereum", "base", "ETH", "BASE.ETH", "base-eth"),
    # THORChain native
    "rune": _asset("rune", "THORChain", "thorchain", "RUNE", "THOR.RUNE", "rune"),
    "tcy": _asset("tcy", "TCY", "thorchain", "TCY", "THOR.TCY", "tcy"),
    "ruji": _asset("ruji", "Rujira", "thorchain", "RUJI", "THOR.RUJI", "x/ruji"),
    "auto": _asset("auto", "Auto", "thorchain", "AUTO", "THOR.AUTO", "thor.auto"),
    # Stablecoins
    "usdc_eth": _asset(
        "usdc_eth", "USD Coin (Ethereum)", "ethereum", "USDC",
        "ETH.USDC-0XA0B86991C6218B36C1D19D4A2E9EB0CE3606EB48",
        "eth-usdc-0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
    ),
    "usdt_eth": _asset(
        "usdt_eth", "Tether (Ethereum)", "ethereum", "USDT",
        "ETH.USDT-0XDAC17F958D2EE523A2206206994597C13D831EC7",
        "eth-usdt-0xdac17f958d2ee523a2206206994597c13d831ec7",
    ),
    "dai": _asset(
        "dai", "Dai", "ethereum", "DAI",
        "ETH.DAI-0X6B175474E89094C44DA98B954EEDEAC495271D0F",
        "eth-dai-0x6b175474e89094c44da98b954eedeac495271d0f",
    ),
}


def find_asset(identifier: str) -> Optional[Asset]:
    """Look up an asset by id, L1 ticker, THORChain asset or FIN denom.

    L1 tickers are ambiguous across chains; the first registered match wins.
    """
    if not identifier:
        return None

    normalized = identifier.strip().lower()
    for asset in KNOWN_ASSETS.values():
        if normalized in (asset.id, asset.fin, asset.thorchain.lower(), asset.l1.lower()):
            return asset
    return None


def denom_to_asset(denom: str) -> str:
    """Convert a FIN denom to a THORChain asset identifier.

    e.g., "btc-btc" -> "BTC.BTC", "x/ruji" -> "THOR.RUJI", "rune" -> "THOR.RUNE"
    """
    known = find_asset(denom)
    if known and known.fin == denom.lower():
        return known.thorchain

    if denom.startswith("thor."):
        return f"THOR.{denom[5:].upper()}"
    if denom.startswith("x/"):
        return f"THOR.{denom[2:].upper()}"

    # "chain-symbol[-contract]" -> "CHAIN.SYMBOL[-CONTRACT]"
    chain, sep, rest = denom.partition("-")
    if sep and chain:
        return f"{chain.upper()}.{rest.upper()}"

    return denom.upper()


def asset_to_denom(asset: str) -> str:
    """Convert an asset identifier to the indexer's short denom.

    e.g., "BTC.BTC" -> "btc/btc", "ETH.USDC-0X..." -> "eth/usdc", "THOR.RUNE" -> "rune"
    """
    if asset in ("THOR.RUNE", "rune"):
        return "rune"

    if "." in asset:
        chain, symbol = asset.split(".", 1)
        base_symbol = symbol.split("-", 1)[0]
        return f"{chain.lower()}/{base_symbol.lower()}"

    return asset.lower()


def to_base_units(amount: Union[Decimal, str, int], decimals: int = 8) -> int:
    """Convert a human-readable amount to base units (truncating)."""
    return int(Decimal(str(amount)).scaleb(decimals))


def from_base_units(amount: Union[int, str], decimals: int = 8) -> Decimal:
    """Convert base units to a human-readable amount."""
    return Decimal(int(amount)).scaleb(-decimals)

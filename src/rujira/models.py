"""Value types shared by discovery and quoting.

Quotes are immutable; recomputing slippage-dependent fields produces a new
instance via ``dataclasses.replace``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class QuoteRequest:
    """Parameters for a swap quote. Amount is in base units."""

    from_asset: str
    to_asset: str
    amount: str
    slippage_bps: Optional[int] = None
    destination: Optional[str] = None


@dataclass(frozen=True)
class Fees:
    """Fee breakdown in output-asset base units."""

    network: str = "0"
    protocol: str = "0"
    affiliate: str = "0"
    total: str = "0"


@dataclass(frozen=True)
class SwapQuote:
    """A priced, time-bounded swap offer."""

    request: QuoteRequest
    expected_output: str
    minimum_output: str
    rate: str  # input per output, 8-digit fixed point
    price_impact: str  # percent, a range like "1.0-3.0", or "unknown"
    fees: Fees
    contract_address: str
    quote_id: str
    created_at: int  # ms
    expires_at: int  # ms
    warning: Optional[str] = None

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at

    def age_ms(self, now: int) -> int:
        return now - self.created_at

    def to_dict(self) -> dict:
        """Convert to dictionary for logging or serialization."""
        return {
            "quote_id": self.quote_id,
            "from_asset": self.request.from_asset,
            "to_asset": self.request.to_asset,
            "amount": self.request.amount,
            "slippage_bps": self.request.slippage_bps,
            "destination": self.request.destination,
            "expected_output": self.expected_output,
            "minimum_output": self.minimum_output,
            "rate": self.rate,
            "price_impact": self.price_impact,
            "fees": {
                "network": self.fees.network,
                "protocol": self.fees.protocol,
                "affiliate": self.fees.affiliate,
                "total": self.fees.total,
            },
            "contract_address": self.contract_address,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "warning": self.warning,
        }


@dataclass(frozen=True)
class SwapOptions:
    """Execution-time overrides."""

    slippage_bps: Optional[int] = None
    memo: Optional[str] = None
    skip_balance_validation: bool = False


@dataclass(frozen=True)
class SwapResult:
    """Result of submitting a swap."""

    tx_hash: str
    status: str
    from_amount: str
    fee: str
    timestamp: int


@dataclass(frozen=True)
class Coin:
    denom: str
    amount: str

    def to_dict(self) -> dict:
        return {"denom": self.denom, "amount": self.amount}


@dataclass(frozen=True)
class SwapTransaction:
    """Unsigned FIN swap call, ready for an external signer."""

    contract_address: str
    msg: dict
    funds: list[Coin]


@dataclass(frozen=True)
class SimulationResult:
    returned: str
    fee: str


@dataclass(frozen=True)
class OrderBookEntry:
    price: str
    amount: str
    total: str = "0"


@dataclass(frozen=True)
class OrderBook:
    """Snapshot of a FIN order book. Bids best-first (descending), asks ascending."""

    bids: list[OrderBookEntry] = field(default_factory=list)
    asks: list[OrderBookEntry] = field(default_factory=list)

    @property
    def best_bid(self) -> Optional[str]:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Optional[str]:
        return self.asks[0].price if self.asks else None


@dataclass(frozen=True)
class Market:
    """A FIN market as reported by the indexer or chain."""

    contract_address: str
    base_asset: str
    quote_asset: str
    base_denom: str
    quote_denom: str
    tick_size: str = "0"
    taker_fee: str = "0.0015"
    maker_fee: str = "0.00075"
    active: bool = True


class DiscoverySource(str, Enum):
    """Where a discovery result came from."""

    INDEXED_API = "indexed-api"
    CHAIN_SCAN = "chain-scan"
    FALLBACK_FAILED = "fallback-failed"


@dataclass(frozen=True)
class DiscoveredContracts:
    """Pair -> contract address map from one discovery cycle."""

    pair_to_address: dict[str, str]
    discovered_at: int  # ms
    source: DiscoverySource
    last_error: Optional[str] = None

    def lookup(self, base_asset: str, quote_asset: str) -> Optional[str]:
        """Find an address by pair key, trying the reverse pair too."""
        return self.pair_to_address.get(f"{base_asset}/{quote_asset}") or self.pair_to_address.get(
            f"{quote_asset}/{base_asset}"
        )


def build_swap_msg(min_return: str, to: Optional[str] = None) -> dict[str, Any]:
    """Build a FIN market swap message guarded by a minimum return."""
    min_msg: dict[str, Any] = {"min_return": min_return}
    if to:
        min_msg["to"] = to
    return {"swap": {"min": min_msg}}

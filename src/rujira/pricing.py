"""Price impact, rate and minimum-return math.

All arithmetic uses Decimal or int; floats never touch prices.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Optional, Union

from rujira.models import OrderBook

MAX_PRICE_IMPACT = Decimal("50")
MAX_PRICE_IMPACT_DISPLAY = "50.00"

# Heuristic tiers (base units) when no order book is available
MEDIUM_SWAP_THRESHOLD = 100_000_000_000
LARGE_SWAP_THRESHOLD = 1_000_000_000_000

RATE_SCALE = 100_000_000  # 8-digit fixed point

IntLike = Union[int, str]


def has_usable_book(order_book: Optional[OrderBook]) -> bool:
    """True when the book has at least one bid and one ask price."""
    return bool(order_book and order_book.best_bid and order_book.best_ask)


def estimate_price_impact(
    input_amount: IntLike,
    output_amount: IntLike,
    order_book: Optional[OrderBook] = None,
) -> str:
    """Estimate price impact of a swap in percent.

    Args:
        input_amount: Amount offered, base units
        output_amount: Simulated amount returned, base units
        order_book: Book snapshot, or None when unavailable

    Returns:
        Impact with 4 decimals (capped at "50.00"), or a heuristic range,
        or "unknown" for large swaps without a book
    """
    if not has_usable_book(order_book):
        return estimate_without_order_book(input_amount)

    with localcontext() as ctx:
        ctx.prec = 50
        try:
            bid = Decimal(order_book.best_bid)
            ask = Decimal(order_book.best_ask)
        except InvalidOperation:
            return estimate_without_order_book(input_amount)

        if bid <= 0 or ask <= 0:
            return "0"

        amount_in = Decimal(str(input_amount))
        amount_out = Decimal(str(output_amount))
        if amount_in <= 0 or amount_out <= 0:
            return "0"

        mid_price = (bid + ask) / 2
        execution_price = amount_out / amount_in
        impact = abs(execution_price - mid_price) / mid_price * 100

        if impact > MAX_PRICE_IMPACT:
            return MAX_PRICE_IMPACT_DISPLAY

        return str(impact.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP))


def estimate_without_order_book(input_amount: IntLike) -> str:
    """Size-tiered price impact guess."""
    amount = abs(int(input_amount))

    if amount >= LARGE_SWAP_THRESHOLD:
        return "unknown"
    if amount >= MEDIUM_SWAP_THRESHOLD:
        return "2.0-5.0"
    return "1.0-3.0"


def calculate_min_return(expected_output: IntLike, slippage_bps: int) -> str:
    """Minimum acceptable output after slippage, truncated toward zero."""
    expected = int(expected_output)
    slippage_amount = expected * slippage_bps // 10000
    return str(expected - slippage_amount)


def calculate_rate(input_amount: IntLike, output_amount: IntLike) -> str:
    """Input per unit of output in 8-digit fixed point, rounded down."""
    output = int(output_amount)
    if output <= 0:
        return "0"
    return str(int(input_amount) * RATE_SCALE // output)

"""Input validation for quote requests.

All checks run before any network I/O.
"""

from typing import Optional

from bip_utils import Bech32ChecksumError, Bech32Decoder

from rujira.errors import ErrorCode, RujiraError
from rujira.models import QuoteRequest

THOR_HRP = "thor"
VALID_ADDRESS_LENGTHS = (20, 32)  # account / contract

MIN_SLIPPAGE_BPS = 1
MAX_SLIPPAGE_BPS = 5000


def parse_amount(amount: Optional[str]) -> int:
    """Parse a base-unit amount string into a positive int."""
    if amount is None or str(amount).strip() == "":
        raise RujiraError(ErrorCode.INVALID_AMOUNT, "amount is required")

    text = str(amount).strip()
    if not (text.isascii() and text.isdigit()):
        raise RujiraError(
            ErrorCode.INVALID_AMOUNT,
            f"amount must be a positive integer in base units, got {amount!r}",
        )

    value = int(text)
    if value <= 0:
        raise RujiraError(ErrorCode.INVALID_AMOUNT, "amount must be a positive number")
    return value


def validate_slippage(slippage_bps: Optional[int]) -> None:
    if slippage_bps is None:
        return
    if isinstance(slippage_bps, bool) or not isinstance(slippage_bps, int):
        raise RujiraError(ErrorCode.INVALID_SLIPPAGE, "slippage_bps must be an integer")
    if not MIN_SLIPPAGE_BPS <= slippage_bps <= MAX_SLIPPAGE_BPS:
        raise RujiraError(
            ErrorCode.INVALID_SLIPPAGE,
            f"slippage_bps must be between {MIN_SLIPPAGE_BPS} (0.01%) and {MAX_SLIPPAGE_BPS} (50%)",
        )


def validate_thor_address(address: Optional[str]) -> str:
    """Check a THORChain bech32 address and return it trimmed.

    Raises:
        RujiraError: INVALID_ADDRESS on bad prefix, checksum or payload length
    """
    if not address or not isinstance(address, str):
        raise RujiraError(ErrorCode.INVALID_ADDRESS, "Destination address is required")

    trimmed = address.strip()
    if not trimmed.startswith(f"{THOR_HRP}1"):
        raise RujiraError(
            ErrorCode.INVALID_ADDRESS,
            f"Invalid destination address format: must start with '{THOR_HRP}1'. Got: {trimmed[:10]}...",
        )

    try:
        payload = Bech32Decoder.Decode(THOR_HRP, trimmed)
    except Bech32ChecksumError as e:
        raise RujiraError(ErrorCode.INVALID_ADDRESS, f"Invalid bech32 checksum: {e}") from e
    except ValueError as e:
        raise RujiraError(ErrorCode.INVALID_ADDRESS, f"Invalid bech32 address: {e}") from e

    if len(payload) not in VALID_ADDRESS_LENGTHS:
        raise RujiraError(
            ErrorCode.INVALID_ADDRESS,
            f"Invalid address data length: expected 20 or 32 bytes, got {len(payload)}",
        )

    return trimmed


def validate_quote_request(request: QuoteRequest, dust_threshold: int = 0) -> int:
    """Validate a quote request.

    Args:
        request: Request to check
        dust_threshold: Amounts at or below this are rejected (0 disables)

    Returns:
        The parsed input amount

    Raises:
        RujiraError: INVALID_ASSET, INVALID_PAIR, INVALID_AMOUNT,
            INVALID_SLIPPAGE or INVALID_ADDRESS
    """
    if not request.from_asset:
        raise RujiraError(ErrorCode.INVALID_ASSET, "from_asset is required")
    if not request.to_asset:
        raise RujiraError(ErrorCode.INVALID_ASSET, "to_asset is required")
    if request.from_asset == request.to_asset:
        raise RujiraError(ErrorCode.INVALID_PAIR, "Cannot swap asset to itself")

    amount = parse_amount(request.amount)
    if dust_threshold > 0 and amount <= dust_threshold:
        raise RujiraError(
            ErrorCode.INVALID_AMOUNT,
            f"Swap amount {amount} is at or below dust threshold ({dust_threshold}). "
            f"Minimum swap amount: {dust_threshold + 1}",
        )

    validate_slippage(request.slippage_bps)

    if request.destination is not None:
        validate_thor_address(request.destination)

    return amount

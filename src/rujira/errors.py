"""Error types for the Rujira SDK.

Every failure that reaches a caller is a ``RujiraError`` carrying an
``ErrorCode`` and an explicit ``retryable`` flag. ``wrap_error`` normalizes
arbitrary exceptions through an ordered rule table:

1. typed exceptions (timeouts, transport errors)
2. structured error codes (errno names, gRPC status, HTTP status)
3. message heuristics

The first matching rule wins.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, Optional

import httpx


class ErrorCode(str, Enum):
    """Error codes for programmatic handling."""

    # Network
    NETWORK_ERROR = "NETWORK_ERROR"
    RPC_ERROR = "RPC_ERROR"
    TIMEOUT = "TIMEOUT"
    NOT_CONNECTED = "NOT_CONNECTED"

    # Validation
    INVALID_ASSET = "INVALID_ASSET"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_PAIR = "INVALID_PAIR"
    INVALID_SLIPPAGE = "INVALID_SLIPPAGE"

    # Balance
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INSUFFICIENT_GAS = "INSUFFICIENT_GAS"

    # Swap
    NO_ROUTE = "NO_ROUTE"
    SLIPPAGE_EXCEEDED = "SLIPPAGE_EXCEEDED"
    QUOTE_EXPIRED = "QUOTE_EXPIRED"
    PRICE_IMPACT_TOO_HIGH = "PRICE_IMPACT_TOO_HIGH"

    # Transaction
    SIGNING_FAILED = "SIGNING_FAILED"
    BROADCAST_FAILED = "BROADCAST_FAILED"
    TX_FAILED = "TX_FAILED"

    # Contract
    CONTRACT_NOT_FOUND = "CONTRACT_NOT_FOUND"
    CONTRACT_ERROR = "CONTRACT_ERROR"

    # Configuration
    INVALID_CONFIG = "INVALID_CONFIG"
    MISSING_SIGNER = "MISSING_SIGNER"


RETRYABLE_CODES = frozenset(
    {ErrorCode.NETWORK_ERROR, ErrorCode.RPC_ERROR, ErrorCode.TIMEOUT}
)

USER_MESSAGES = {
    ErrorCode.NETWORK_ERROR: "Network connection failed. Please check your internet connection.",
    ErrorCode.RPC_ERROR: "Failed to communicate with the blockchain. Please try again.",
    ErrorCode.TIMEOUT: "Request timed out. Please try again.",
    ErrorCode.NOT_CONNECTED: "Not connected to the network. Please connect first.",
    ErrorCode.INVALID_ASSET: "Invalid asset. Please check the asset identifier.",
    ErrorCode.INVALID_AMOUNT: "Invalid amount. Please enter a valid number.",
    ErrorCode.INVALID_ADDRESS: "Invalid address format.",
    ErrorCode.INVALID_PAIR: "Trading pair not found or not supported.",
    ErrorCode.INVALID_SLIPPAGE: "Invalid slippage tolerance. Must be between 0.01% and 50%.",
    ErrorCode.INSUFFICIENT_BALANCE: "Insufficient balance for this transaction.",
    ErrorCode.INSUFFICIENT_GAS: "Insufficient RUNE for gas fees.",
    ErrorCode.NO_ROUTE: "No swap route available for this pair.",
    ErrorCode.SLIPPAGE_EXCEEDED: "Price moved too much. Try increasing slippage tolerance.",
    ErrorCode.QUOTE_EXPIRED: "Quote expired. Please get a new quote.",
    ErrorCode.PRICE_IMPACT_TOO_HIGH: "Price impact is too high. Consider reducing the amount.",
    ErrorCode.SIGNING_FAILED: "Failed to sign the transaction.",
    ErrorCode.BROADCAST_FAILED: "Failed to broadcast the transaction.",
    ErrorCode.TX_FAILED: "Transaction failed on chain.",
    ErrorCode.CONTRACT_NOT_FOUND: "Contract not found at the specified address.",
    ErrorCode.CONTRACT_ERROR: "Contract execution failed.",
    ErrorCode.INVALID_CONFIG: "Invalid configuration.",
    ErrorCode.MISSING_SIGNER: "No signer provided. Connect a wallet first.",
}


class RujiraError(Exception):
    """Base error for all SDK failures."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Any = None,
        retryable: Optional[bool] = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.retryable = code in RETRYABLE_CODES if retryable is None else retryable
        super().__init__(message)

    def to_user_message(self) -> str:
        """Get a user-friendly message for this error."""
        return USER_MESSAGES.get(self.code, self.message)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        details = self.details
        if isinstance(details, BaseException):
            details = f"{type(details).__name__}: {details}"
        return {
            "name": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
            "details": details,
            "retryable": self.retryable,
        }


class IndexerErrorKind(str, Enum):
    """Failure classes of the indexed discovery API."""

    AUTH = "auth"
    SERVER = "server"
    NETWORK = "network"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"
    UNKNOWN = "unknown"


_INDEXER_KIND_CODES = {
    IndexerErrorKind.AUTH: ErrorCode.INVALID_CONFIG,
    IndexerErrorKind.SERVER: ErrorCode.RPC_ERROR,
    IndexerErrorKind.NETWORK: ErrorCode.NETWORK_ERROR,
    IndexerErrorKind.TIMEOUT: ErrorCode.TIMEOUT,
    IndexerErrorKind.PROTOCOL: ErrorCode.RPC_ERROR,
    IndexerErrorKind.UNKNOWN: ErrorCode.NETWORK_ERROR,
}


class IndexerError(RujiraError):
    """Raised when the GraphQL indexer request fails."""

    def __init__(
        self,
        kind: IndexerErrorKind,
        message: str,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        self.kind = kind
        self.status_code = status_code
        code = _INDEXER_KIND_CODES[kind]
        super().__init__(
            code,
            message,
            details=details,
            retryable=kind is not IndexerErrorKind.AUTH and code in RETRYABLE_CODES,
        )

    @property
    def is_auth(self) -> bool:
        return self.kind is IndexerErrorKind.AUTH

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["kind"] = self.kind.value
        data["status_code"] = self.status_code
        return data


# ============================================================================
# Classification rules
# ============================================================================

Rule = tuple[Callable[[BaseException], bool], Callable[[BaseException], RujiraError]]

_NETWORK_CODES = {"ECONNREFUSED", "ENOTFOUND", "ECONNRESET", "EPIPE", "EHOSTUNREACH"}
_TIMEOUT_CODES = {"ETIMEDOUT", "DEADLINE_EXCEEDED", 4}
_NOT_FOUND_CODES = {"NOT_FOUND", 5}
_UNAVAILABLE_CODES = {"UNAVAILABLE", 14}


def _code_of(error: BaseException) -> Any:
    code = getattr(error, "code", None)
    # grpc exceptions expose code() as a method returning an enum
    if callable(code):
        try:
            code = code()
        except Exception:
            return None
    name = getattr(code, "name", None)
    return name if isinstance(name, str) else code


def _has_code(codes: set) -> Callable[[BaseException], bool]:
    def predicate(error: BaseException) -> bool:
        code = _code_of(error)
        return isinstance(code, (str, int)) and code in codes

    return predicate


def _message_contains(*needles: str) -> Callable[[BaseException], bool]:
    def predicate(error: BaseException) -> bool:
        message = str(error).lower()
        return any(needle in message for needle in needles)

    return predicate


def _status_between(low: int, high: int) -> Callable[[BaseException], bool]:
    def predicate(error: BaseException) -> bool:
        if not isinstance(error, httpx.HTTPStatusError):
            return False
        return low <= error.response.status_code <= high

    return predicate


def _is_timeout(error: BaseException) -> bool:
    return (
        isinstance(error, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException))
        or type(error).__name__ == "TimeoutError"
    )


def _build(code: ErrorCode, retryable: Optional[bool] = None):
    def build(error: BaseException) -> RujiraError:
        return RujiraError(code, str(error) or type(error).__name__, details=error, retryable=retryable)

    return build


CLASSIFICATION_RULES: list[Rule] = [
    # Tier 1: typed errors
    (_is_timeout, _build(ErrorCode.TIMEOUT, True)),
    (lambda e: isinstance(e, (httpx.TransportError, ConnectionError)), _build(ErrorCode.NETWORK_ERROR, True)),
    # Tier 2: structured codes
    (_has_code(_NETWORK_CODES), _build(ErrorCode.NETWORK_ERROR, True)),
    (_has_code(_TIMEOUT_CODES), _build(ErrorCode.TIMEOUT, True)),
    (_has_code(_NOT_FOUND_CODES), _build(ErrorCode.CONTRACT_NOT_FOUND, False)),
    (_has_code(_UNAVAILABLE_CODES), _build(ErrorCode.RPC_ERROR, True)),
    (_status_between(404, 404), _build(ErrorCode.CONTRACT_NOT_FOUND, False)),
    (_status_between(500, 599), _build(ErrorCode.RPC_ERROR, True)),
    (_status_between(400, 499), _build(ErrorCode.CONTRACT_ERROR, False)),
    # Tier 3: message heuristics
    (_message_contains("insufficient funds", "insufficient balance"), _build(ErrorCode.INSUFFICIENT_BALANCE)),
    (_message_contains("timeout", "timed out"), _build(ErrorCode.TIMEOUT, True)),
    (_message_contains("slippage", "min_return"), _build(ErrorCode.SLIPPAGE_EXCEEDED)),
    (_message_contains("out of gas"), _build(ErrorCode.INSUFFICIENT_GAS)),
    (_message_contains("contract not found", "no such contract"), _build(ErrorCode.CONTRACT_NOT_FOUND)),
]


def wrap_error(error: Any, default_code: ErrorCode = ErrorCode.NETWORK_ERROR) -> RujiraError:
    """Normalize any error into a RujiraError.

    Args:
        error: Exception (or arbitrary value) to normalize
        default_code: Code used when no classification rule matches

    Returns:
        RujiraError; RujiraError inputs are returned unchanged
    """
    if isinstance(error, RujiraError):
        return error

    if not isinstance(error, BaseException):
        return RujiraError(default_code, str(error), details=error)

    for predicate, build in CLASSIFICATION_RULES:
        if predicate(error):
            return build(error)

    return RujiraError(default_code, str(error) or type(error).__name__, details=error)


def is_retryable_error(error: Any) -> bool:
    """Check if an error is worth retrying."""
    if isinstance(error, RujiraError):
        return error.retryable
    return False

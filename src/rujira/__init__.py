"""Rujira SDK - quotes and swaps on the Rujira FIN order-book DEX (THORChain)."""

__version__ = "0.1.0"

from rujira.chain import ChainClient, Signer, ThornodeClient
from rujira.client import RujiraClient, create_client
from rujira.config import DiscoveryOptions, QuoteEngineOptions, RujiraSettings, get_settings
from rujira.discovery import ContractDiscovery, GraphQLIndexerClient
from rujira.errors import (
    ErrorCode,
    IndexerError,
    IndexerErrorKind,
    RujiraError,
    is_retryable_error,
    wrap_error,
)
from rujira.models import (
    DiscoveredContracts,
    DiscoverySource,
    Market,
    QuoteRequest,
    SwapOptions,
    SwapQuote,
    SwapResult,
    SwapTransaction,
)
from rujira.persistence import ContractStore, JsonFileContractStore
from rujira.routes import EASY_ROUTES, list_routes
from rujira.swap import QuoteEngine

__all__ = [
    # Client
    "RujiraClient",
    "create_client",
    "QuoteEngine",
    "ContractDiscovery",
    "GraphQLIndexerClient",
    "ThornodeClient",
    "ChainClient",
    "Signer",
    "ContractStore",
    "JsonFileContractStore",
    # Config
    "RujiraSettings",
    "get_settings",
    "QuoteEngineOptions",
    "DiscoveryOptions",
    # Models
    "QuoteRequest",
    "SwapQuote",
    "SwapOptions",
    "SwapResult",
    "SwapTransaction",
    "Market",
    "DiscoveredContracts",
    "DiscoverySource",
    # Errors
    "ErrorCode",
    "RujiraError",
    "IndexerError",
    "IndexerErrorKind",
    "wrap_error",
    "is_retryable_error",
    # Routes
    "EASY_ROUTES",
    "list_routes",
]

"""SDK configuration using pydantic-settings.

Environment variables use the ``RUJIRA_`` prefix, e.g. ``RUJIRA_NETWORK=stagenet``.
Components themselves take plain option dataclasses; ``RujiraSettings`` maps
the environment onto them.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# THORNode REST endpoints
THORNODE_MAINNET = "https://thornode.ninerealms.com"
THORNODE_STAGENET = "https://stagenet-thornode.ninerealms.com"

# Rujira GraphQL indexer (Phoenix/Absinthe serves queries at /api/graphql)
GRAPHQL_MAINNET = "https://api.rujira.network/api/graphql"
GRAPHQL_STAGENET = "https://preview-api.rujira.network/api/graphql"

NETWORK_PRESETS = {
    "mainnet": {"thornode": THORNODE_MAINNET, "graphql": GRAPHQL_MAINNET},
    "stagenet": {"thornode": THORNODE_STAGENET, "graphql": GRAPHQL_STAGENET},
}

# FIN order-book contracts are instantiated from this code id on mainnet
FIN_CODE_ID = 73


@dataclass
class QuoteEngineOptions:
    """Options for the quote engine."""

    default_slippage_bps: int = 100  # 1%

    # Timing
    quote_ttl_ms: int = 120000
    # MPC signing takes 30-60s; the buffer must exceed it and stay below the TTL
    quote_expiry_buffer_ms: int = 60000
    stale_warning_ms: int = 5000

    # Quote cache
    cache_enabled: bool = True
    cache_ttl_ms: int = 30000
    cache_max_size: int = 100

    # Batch quoting
    batch_concurrency: int = 3

    # Amounts at or below this (base units) are rejected; 0 leaves it to the contract
    dust_threshold: int = 0

    # Known pair -> contract address table ("BASE/QUOTE" keys)
    contracts: dict[str, str] = field(default_factory=dict)


@dataclass
class DiscoveryOptions:
    """Options for contract discovery."""

    cache_ttl_ms: int = 5 * 60 * 1000  # 0 disables caching
    fin_code_id: int = FIN_CODE_ID
    page_limit: int = 100


class RujiraSettings(BaseSettings):
    """SDK settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RUJIRA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Network
    # ======================
    network: str = Field(default="mainnet", description="mainnet or stagenet")
    thornode_url: str = Field(default="", description="THORNode REST URL override")
    graphql_url: str = Field(default="", description="Rujira GraphQL endpoint override")
    graphql_api_key: Optional[str] = Field(default=None, description="Indexer API key")
    request_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    fin_code_id: int = Field(default=FIN_CODE_ID, description="FIN contract code id")

    # ======================
    # Quoting
    # ======================
    default_slippage_bps: int = Field(default=100, ge=1, le=5000)
    quote_ttl_ms: int = Field(default=120000, gt=0)
    quote_expiry_buffer_ms: int = Field(default=60000, ge=0)
    quote_cache_ttl_ms: int = Field(default=30000, ge=0)
    quote_cache_max_size: int = Field(default=100, gt=0)
    batch_concurrency: int = Field(default=3, gt=0)
    dust_threshold: int = Field(default=0, ge=0)

    # ======================
    # Discovery
    # ======================
    discovery_cache_ttl_ms: int = Field(default=300000, ge=0)
    contracts_file: Optional[str] = Field(
        default=None, description="JSON file for discovered pair -> contract addresses"
    )

    debug: bool = Field(default=False, description="Enable debug logging")

    @property
    def resolved_thornode_url(self) -> str:
        """THORNode REST URL, falling back to the network preset."""
        if self.thornode_url:
            return self.thornode_url.rstrip("/")
        return self._preset()["thornode"]

    @property
    def resolved_graphql_url(self) -> str:
        """GraphQL endpoint, falling back to the network preset."""
        return self.graphql_url or self._preset()["graphql"]

    def _preset(self) -> dict:
        return NETWORK_PRESETS.get(self.network.lower(), NETWORK_PRESETS["mainnet"])

    def quote_engine_options(self, contracts: Optional[dict[str, str]] = None) -> QuoteEngineOptions:
        """Build quote engine options from these settings."""
        return QuoteEngineOptions(
            default_slippage_bps=self.default_slippage_bps,
            quote_ttl_ms=self.quote_ttl_ms,
            quote_expiry_buffer_ms=self.quote_expiry_buffer_ms,
            cache_enabled=self.quote_cache_ttl_ms > 0,
            cache_ttl_ms=self.quote_cache_ttl_ms,
            cache_max_size=self.quote_cache_max_size,
            batch_concurrency=self.batch_concurrency,
            dust_threshold=self.dust_threshold,
            contracts=dict(contracts or {}),
        )

    def discovery_options(self) -> DiscoveryOptions:
        """Build discovery options from these settings."""
        return DiscoveryOptions(
            cache_ttl_ms=self.discovery_cache_ttl_ms,
            fin_code_id=self.fin_code_id,
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "network": self.network,
            "thornode": self.resolved_thornode_url,
            "graphql": self.resolved_graphql_url,
            "graphql_api_key": "***" if self.graphql_api_key else "(not set)",
            "fin_code_id": self.fin_code_id,
            "quoting": {
                "default_slippage_bps": self.default_slippage_bps,
                "quote_ttl_ms": self.quote_ttl_ms,
                "quote_expiry_buffer_ms": self.quote_expiry_buffer_ms,
                "batch_concurrency": self.batch_concurrency,
            },
            "discovery_cache_ttl_ms": self.discovery_cache_ttl_ms,
            "contracts_file": self.contracts_file or "(none)",
        }


@lru_cache
def get_settings() -> RujiraSettings:
    """Get cached settings instance."""
    return RujiraSettings()

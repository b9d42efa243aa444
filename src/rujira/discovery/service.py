"""FIN contract discovery.

Discovers FIN contract addresses via:
1. Rujira GraphQL indexer (primary)
2. Chain scan over the FIN code id (fallback)

Concurrent discovery requests share one in-flight task. Authentication
failures from the indexer surface immediately; every other failure falls
back to the chain scan, and if that fails too an empty result is returned.
"""

import asyncio
import logging
from typing import Optional, Protocol

from rujira.assets import asset_to_denom, denom_to_asset
from rujira.cache import Clock, now_ms
from rujira.chain import ChainClient
from rujira.config import DiscoveryOptions
from rujira.discovery.schemas import IndexedMarket, MarketsResponse
from rujira.errors import IndexerError
from rujira.models import DiscoveredContracts, DiscoverySource, Market

logger = logging.getLogger(__name__)

DEFAULT_TICK = "0"
DEFAULT_TAKER_FEE = "0.0015"
DEFAULT_MAKER_FEE = "0.00075"

CONFIG_QUERY = {"config": {}}


class IndexerClient(Protocol):
    async def get_markets(self) -> MarketsResponse:
        ...

    async def get_market(self, base_asset: str, quote_asset: str) -> Optional[IndexedMarket]:
        ...


def pair_key(base_asset: str, quote_asset: str) -> str:
    return f"{base_asset}/{quote_asset}"


class ContractDiscovery:
    """Pair -> FIN contract address discovery with caching and fallback."""

    def __init__(
        self,
        indexer: IndexerClient,
        chain: ChainClient,
        options: Optional[DiscoveryOptions] = None,
        clock: Optional[Clock] = None,
    ):
        self.indexer = indexer
        self.chain = chain
        self.options = options or DiscoveryOptions()
        self._clock = clock or now_ms
        self._cache: Optional[DiscoveredContracts] = None
        self._pending: Optional[asyncio.Task] = None

    @property
    def cache_ttl_ms(self) -> int:
        return self.options.cache_ttl_ms

    def _is_cache_valid(self) -> bool:
        if self._cache is None or self.cache_ttl_ms == 0:
            return False
        return self._clock() - self._cache.discovered_at < self.cache_ttl_ms

    async def discover_contracts(self, force_refresh: bool = False) -> DiscoveredContracts:
        """Discover all FIN contracts.

        Args:
            force_refresh: Bypass the cache

        Returns:
            Discovered pair -> address map. Empty (source fallback-failed)
            when both the indexer and the chain scan fail.

        Raises:
            IndexerError: the indexer rejected our credentials
        """
        if not force_refresh and self._is_cache_valid():
            logger.debug("Using cached contracts")
            return self._cache

        if self._pending is None:
            logger.debug("Discovering contracts...")
            task = asyncio.ensure_future(self._perform_discovery())
            task.add_done_callback(self._clear_pending)
            self._pending = task
        else:
            logger.debug("Discovery already in progress, joining it")

        # Shielded so one cancelled caller does not cancel the shared cycle
        return await asyncio.shield(self._pending)

    def _clear_pending(self, task: asyncio.Task) -> None:
        if self._pending is task:
            self._pending = None

    async def _perform_discovery(self) -> DiscoveredContracts:
        try:
            contracts = await self._discover_via_indexer()
        except IndexerError as e:
            if e.is_auth:
                logger.error(f"Indexer rejected credentials, not falling back: {e.message}")
                raise
            return await self._fallback(e)
        except Exception as e:
            return await self._fallback(e)

        self._cache = contracts
        return contracts

    async def _fallback(self, error: Exception) -> DiscoveredContracts:
        kind = error.kind.value if isinstance(error, IndexerError) else type(error).__name__
        logger.warning(f"Indexer discovery failed ({kind}), trying chain scan: {error}")

        try:
            contracts = await self._discover_via_chain()
        except Exception as chain_error:
            logger.error(f"Chain scan also failed: {chain_error}")
            return DiscoveredContracts(
                pair_to_address={},
                discovered_at=self._clock(),
                source=DiscoverySource.FALLBACK_FAILED,
                last_error=str(error) or type(error).__name__,
            )

        # Chain-scan results replace whatever was cached before
        self._cache = contracts
        return contracts

    async def _discover_via_indexer(self) -> DiscoveredContracts:
        response = await self.indexer.get_markets()

        pair_to_address = {
            pair_key(market.denoms.base, market.denoms.quote): market.address
            for market in response.markets
        }
        logger.info(f"Indexer discovery complete: {len(pair_to_address)} markets")

        return DiscoveredContracts(
            pair_to_address=pair_to_address,
            discovered_at=self._clock(),
            source=DiscoverySource.INDEXED_API,
        )

    async def _discover_via_chain(self) -> DiscoveredContracts:
        addresses = await self.chain.list_contracts_by_code(
            self.options.fin_code_id, self.options.page_limit
        )
        logger.info(f"Found {len(addresses)} FIN contracts under code {self.options.fin_code_id}")

        pair_to_address: dict[str, str] = {}
        for address in addresses:
            try:
                config = await self.chain.query_contract(address, CONFIG_QUERY)
            except Exception as e:
                logger.warning(f"Failed to query config for {address}: {e}")
                continue

            denoms = config.get("denoms") if isinstance(config, dict) else None
            if not isinstance(denoms, list) or len(denoms) != 2 or not all(isinstance(d, str) for d in denoms):
                logger.warning(f"Skipping {address}: unexpected config denoms {denoms!r}")
                continue

            key = pair_key(denom_to_asset(denoms[0]), denom_to_asset(denoms[1]))
            pair_to_address[key] = address
            logger.debug(f"Discovered: {key} -> {address[:20]}...")

        logger.info(f"Chain discovery complete: {len(pair_to_address)} markets")

        return DiscoveredContracts(
            pair_to_address=pair_to_address,
            discovered_at=self._clock(),
            source=DiscoverySource.CHAIN_SCAN,
        )

    async def find_market(self, base_asset: str, quote_asset: str) -> Optional[Market]:
        """Find a market by pair (THORChain asset notation, either orientation)."""
        try:
            market = await self.indexer.get_market(base_asset, quote_asset)
            if market is None:
                market = await self.indexer.get_market(quote_asset, base_asset)
            return self._to_market(market) if market else None
        except Exception as e:
            logger.debug(f"Indexed market lookup failed for {base_asset}/{quote_asset}: {e}")

        contracts = await self.discover_contracts()
        address = contracts.lookup(base_asset, quote_asset)
        if not address:
            return None

        return Market(
            contract_address=address,
            base_asset=base_asset,
            quote_asset=quote_asset,
            base_denom="",
            quote_denom="",
            tick_size=DEFAULT_TICK,
            taker_fee=DEFAULT_TAKER_FEE,
            maker_fee=DEFAULT_MAKER_FEE,
        )

    async def get_contract_address(self, base_asset: str, quote_asset: str) -> Optional[str]:
        market = await self.find_market(base_asset, quote_asset)
        return market.contract_address if market else None

    async def list_markets(self) -> list[Market]:
        """List all markets; empty on failure."""
        try:
            response = await self.indexer.get_markets()
        except Exception as e:
            logger.warning(f"list_markets failed: {e}")
            return []
        return [self._to_market(m) for m in response.markets]

    def clear_cache(self) -> None:
        self._cache = None

    def get_cache_status(self) -> dict:
        """Cache presence, age and validity."""
        status = {
            "cached": self._cache is not None,
            "age_ms": None,
            "valid": False,
            "ttl_ms": self.cache_ttl_ms,
            "source": None,
        }
        if self._cache is not None:
            status["age_ms"] = self._clock() - self._cache.discovered_at
            status["valid"] = self._is_cache_valid()
            status["source"] = self._cache.source.value
        return status

    @staticmethod
    def _to_market(market: IndexedMarket) -> Market:
        config = market.config
        return Market(
            contract_address=market.address,
            base_asset=market.denoms.base,
            quote_asset=market.denoms.quote,
            base_denom=asset_to_denom(market.denoms.base),
            quote_denom=asset_to_denom(market.denoms.quote),
            tick_size=(config.tick if config else None) or DEFAULT_TICK,
            taker_fee=(config.fee_taker if config else None) or DEFAULT_TAKER_FEE,
            maker_fee=(config.fee_maker if config else None) or DEFAULT_MAKER_FEE,
        )

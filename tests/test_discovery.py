"""Tests for contract discovery."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from rujira.config import DiscoveryOptions
from rujira.discovery.schemas import IndexedMarket, MarketConfig, MarketDenoms, MarketsResponse
from rujira.discovery.service import ContractDiscovery
from rujira.errors import ErrorCode, IndexerError, IndexerErrorKind, RujiraError
from rujira.models import DiscoverySource

BTC_RUNE = "thor1btcrune"
ETH_RUNE = "thor1ethrune"
ATOM_RUNE = "thor1atomrune"


def market(address: str, base: str, quote: str, config: MarketConfig = None) -> IndexedMarket:
    return IndexedMarket(address=address, denoms=MarketDenoms(base=base, quote=quote), config=config)


def markets_response() -> MarketsResponse:
    return MarketsResponse(
        markets=[
            market(BTC_RUNE, "BTC.BTC", "THOR.RUNE", MarketConfig(tick="0.01", fee_taker="0.002", fee_maker="0.001")),
            market(ETH_RUNE, "ETH.ETH", "THOR.RUNE"),
        ]
    )


@pytest.fixture
def indexer():
    indexer = MagicMock()
    indexer.get_markets = AsyncMock(return_value=markets_response())
    indexer.get_market = AsyncMock(return_value=None)
    return indexer


@pytest.fixture
def scan_chain(chain):
    """Chain double with three FIN contracts, one of them broken."""
    configs = {
        "thor1scanbtc": {"denoms": ["btc-btc", "rune"]},
        "thor1scanatom": {"denoms": ["gaia-atom", "rune"]},
    }

    async def query_contract(address, query):
        assert query == {"config": {}}
        if address not in configs:
            raise RujiraError(ErrorCode.RPC_ERROR, "contract query failed")
        return configs[address]

    chain.list_contracts_by_code = AsyncMock(return_value=["thor1scanbtc", "thor1broken", "thor1scanatom"])
    chain.query_contract = AsyncMock(side_effect=query_contract)
    return chain


@pytest.fixture
def discovery(indexer, scan_chain, clock) -> ContractDiscovery:
    return ContractDiscovery(indexer, scan_chain, DiscoveryOptions(cache_ttl_ms=60000), clock=clock)


class TestDiscoverContracts:
    """Tests for discover_contracts."""

    @pytest.mark.asyncio
    async def test_indexer_success(self, discovery, indexer, scan_chain):
        """Indexer results are used without a chain scan."""
        result = await discovery.discover_contracts()

        assert result.source == DiscoverySource.INDEXED_API
        assert result.pair_to_address == {"BTC.BTC/THOR.RUNE": BTC_RUNE, "ETH.ETH/THOR.RUNE": ETH_RUNE}
        assert result.lookup("THOR.RUNE", "BTC.BTC") == BTC_RUNE
        scan_chain.list_contracts_by_code.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_uses_cache_within_ttl(self, discovery, indexer, clock):
        """Results are reused within the TTL."""
        first = await discovery.discover_contracts()
        clock.advance(59999)
        second = await discovery.discover_contracts()

        assert second is first
        assert indexer.get_markets.await_count == 1

        clock.advance(1)
        await discovery.discover_contracts()
        assert indexer.get_markets.await_count == 2

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_cache(self, discovery, indexer):
        """force_refresh bypasses the cache."""
        await discovery.discover_contracts()
        await discovery.discover_contracts(force_refresh=True)
        assert indexer.get_markets.await_count == 2

    @pytest.mark.asyncio
    async def test_zero_ttl_disables_cache(self, indexer, scan_chain, clock):
        """A zero TTL always rediscovers."""
        discovery = ContractDiscovery(indexer, scan_chain, DiscoveryOptions(cache_ttl_ms=0), clock=clock)
        await discovery.discover_contracts()
        await discovery.discover_contracts()
        assert indexer.get_markets.await_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_query(self, discovery, indexer):
        """Two concurrent calls issue exactly one underlying query."""
        gate = asyncio.Event()

        async def slow_markets():
            await gate.wait()
            return markets_response()

        indexer.get_markets = AsyncMock(side_effect=slow_markets)

        first = asyncio.create_task(discovery.discover_contracts())
        second = asyncio.create_task(discovery.discover_contracts())
        await asyncio.sleep(0)
        gate.set()
        a, b = await asyncio.gather(first, second)

        assert indexer.get_markets.await_count == 1
        assert a is b

    @pytest.mark.asyncio
    async def test_in_flight_marker_cleared_after_failure(self, discovery, indexer):
        """A failed cycle does not block the next one."""
        indexer.get_markets = AsyncMock(side_effect=IndexerError(IndexerErrorKind.AUTH, "401"))

        with pytest.raises(IndexerError):
            await discovery.discover_contracts()

        indexer.get_markets = AsyncMock(return_value=markets_response())
        result = await discovery.discover_contracts()
        assert result.source == DiscoverySource.INDEXED_API

    @pytest.mark.asyncio
    async def test_auth_error_fails_without_chain_scan(self, discovery, indexer, scan_chain):
        """Auth errors surface without falling back."""
        indexer.get_markets = AsyncMock(side_effect=IndexerError(IndexerErrorKind.AUTH, "401", status_code=401))

        with pytest.raises(IndexerError) as exc_info:
            await discovery.discover_contracts()

        assert exc_info.value.is_auth
        scan_chain.list_contracts_by_code.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kind",
        [IndexerErrorKind.SERVER, IndexerErrorKind.NETWORK, IndexerErrorKind.TIMEOUT, IndexerErrorKind.PROTOCOL],
    )
    async def test_transient_errors_fall_back_to_chain_scan(self, discovery, indexer, scan_chain, kind):
        """Transient indexer errors fall back to the chain scan."""
        indexer.get_markets = AsyncMock(side_effect=IndexerError(kind, "indexer down"))

        result = await discovery.discover_contracts()

        assert result.source == DiscoverySource.CHAIN_SCAN
        scan_chain.list_contracts_by_code.assert_awaited_once_with(73, 100)
        # The broken instance is skipped, the others still map
        assert result.pair_to_address == {
            "BTC.BTC/THOR.RUNE": "thor1scanbtc",
            "GAIA.ATOM/THOR.RUNE": "thor1scanatom",
        }

    @pytest.mark.asyncio
    async def test_unexpected_exception_falls_back(self, discovery, indexer):
        """Unexpected exceptions also fall back."""
        indexer.get_markets = AsyncMock(side_effect=RuntimeError("bug"))
        result = await discovery.discover_contracts()
        assert result.source == DiscoverySource.CHAIN_SCAN

    @pytest.mark.asyncio
    async def test_chain_scan_skips_malformed_config(self, discovery, indexer, scan_chain):
        """Contracts with bad config are skipped."""
        indexer.get_markets = AsyncMock(side_effect=IndexerError(IndexerErrorKind.SERVER, "503"))
        scan_chain.list_contracts_by_code = AsyncMock(return_value=["thor1odd"])
        scan_chain.query_contract = AsyncMock(return_value={"denoms": ["rune"]})

        result = await discovery.discover_contracts()

        assert result.source == DiscoverySource.CHAIN_SCAN
        assert result.pair_to_address == {}

    @pytest.mark.asyncio
    async def test_both_failing_returns_empty(self, discovery, indexer, scan_chain):
        """Both sources failing yields an empty result."""
        indexer.get_markets = AsyncMock(side_effect=IndexerError(IndexerErrorKind.SERVER, "indexer down"))
        scan_chain.list_contracts_by_code = AsyncMock(side_effect=RujiraError(ErrorCode.NETWORK_ERROR, "no route"))

        result = await discovery.discover_contracts()

        assert result.source == DiscoverySource.FALLBACK_FAILED
        assert result.pair_to_address == {}
        assert result.last_error == "indexer down"
        assert discovery.get_cache_status()["cached"] is False

    @pytest.mark.asyncio
    async def test_chain_scan_replaces_cache(self, discovery, indexer):
        """A chain scan replaces the previous cache."""
        await discovery.discover_contracts()
        indexer.get_markets = AsyncMock(side_effect=IndexerError(IndexerErrorKind.TIMEOUT, "slow"))

        result = await discovery.discover_contracts(force_refresh=True)

        assert "ETH.ETH/THOR.RUNE" not in result.pair_to_address
        assert discovery.get_cache_status()["source"] == "chain-scan"


class TestFindMarket:
    """Tests for market lookups."""

    @pytest.mark.asyncio
    async def test_direct_lookup(self, discovery, indexer):
        """A listed market is returned with its config."""
        indexer.get_market = AsyncMock(
            return_value=market(BTC_RUNE, "BTC.BTC", "THOR.RUNE", MarketConfig(tick="0.01", fee_taker="0.002"))
        )

        found = await discovery.find_market("BTC.BTC", "THOR.RUNE")

        assert found.contract_address == BTC_RUNE
        assert found.base_denom == "btc/btc"
        assert found.quote_denom == "rune"
        assert found.tick_size == "0.01"
        assert found.taker_fee == "0.002"
        assert found.maker_fee == "0.00075"

    @pytest.mark.asyncio
    async def test_reverse_lookup(self, discovery, indexer):
        """Reverse orientation is tried."""
        indexer.get_market = AsyncMock(side_effect=[None, market(BTC_RUNE, "BTC.BTC", "THOR.RUNE")])

        found = await discovery.find_market("THOR.RUNE", "BTC.BTC")

        assert found.contract_address == BTC_RUNE
        assert indexer.get_market.await_args_list[1].args == ("BTC.BTC", "THOR.RUNE")

    @pytest.mark.asyncio
    async def test_not_listed(self, discovery):
        """Unlisted pairs return None."""
        assert await discovery.find_market("DOGE.DOGE", "THOR.RUNE") is None
        assert await discovery.get_contract_address("DOGE.DOGE", "THOR.RUNE") is None

    @pytest.mark.asyncio
    async def test_falls_back_to_discovery_map(self, discovery, indexer):
        """Indexer failure falls back to the discovery map."""
        indexer.get_market = AsyncMock(side_effect=IndexerError(IndexerErrorKind.NETWORK, "down"))

        found = await discovery.find_market("THOR.RUNE", "ETH.ETH")

        assert found.contract_address == ETH_RUNE
        assert found.base_denom == ""
        assert found.taker_fee == "0.0015"
        assert await discovery.get_contract_address("THOR.RUNE", "ETH.ETH") == ETH_RUNE


class TestListMarketsAndStatus:
    """Tests for list_markets, clear_cache and get_cache_status."""

    @pytest.mark.asyncio
    async def test_list_markets(self, discovery):
        """Markets are listed from the indexer."""
        markets = await discovery.list_markets()
        assert [m.contract_address for m in markets] == [BTC_RUNE, ETH_RUNE]

    @pytest.mark.asyncio
    async def test_list_markets_failure_is_empty(self, discovery, indexer):
        """Listing failures return an empty list."""
        indexer.get_markets = AsyncMock(side_effect=IndexerError(IndexerErrorKind.SERVER, "503"))
        assert await discovery.list_markets() == []

    @pytest.mark.asyncio
    async def test_cache_status(self, discovery, clock):
        """Cache status reports age and validity."""
        assert discovery.get_cache_status() == {
            "cached": False,
            "age_ms": None,
            "valid": False,
            "ttl_ms": 60000,
            "source": None,
        }

        await discovery.discover_contracts()
        clock.advance(1500)
        status = discovery.get_cache_status()
        assert status["cached"] is True
        assert status["age_ms"] == 1500
        assert status["valid"] is True
        assert status["source"] == "indexed-api"

        discovery.clear_cache()
        assert discovery.get_cache_status()["cached"] is False
        assert discovery.cache_ttl_ms == 60000

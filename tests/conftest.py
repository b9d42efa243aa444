"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from bip_utils import Bech32Encoder

# Keep a developer's .env / shell from leaking into settings tests
for _key in [k for k in os.environ if k.startswith("RUJIRA_")]:
    del os.environ[_key]

from rujira.config import QuoteEngineOptions
from rujira.models import Coin, OrderBook, OrderBookEntry, SimulationResult
from rujira.swap import QuoteEngine

START_MS = 1_700_000_000_000

RUNE_BTC_CONTRACT = "thor1finrunebtc0000000000000000000000000000000000000000000000"
RUNE_ETH_CONTRACT = "thor1finruneeth0000000000000000000000000000000000000000000000"

DESTINATION = Bech32Encoder.Encode("thor", bytes(range(20)))


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_book(bid: str = "0.99", ask: str = "1.01") -> OrderBook:
    return OrderBook(
        bids=[OrderBookEntry(price=bid, amount="1000"), OrderBookEntry(price="0.98", amount="500")],
        asks=[OrderBookEntry(price=ask, amount="1000"), OrderBookEntry(price="1.02", amount="500")],
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def chain():
    """Chain client double with a healthy RUNE/BTC market."""
    chain = MagicMock()
    chain.simulate_swap = AsyncMock(return_value=SimulationResult(returned="99000000", fee="150000"))
    chain.get_order_book = AsyncMock(return_value=make_book())
    chain.query_contract = AsyncMock(return_value={})
    chain.list_contracts_by_code = AsyncMock(return_value=[])
    chain.get_address = AsyncMock(return_value=DESTINATION)
    chain.get_balance = AsyncMock(return_value=Coin(denom="rune", amount="10000000000"))
    chain.execute_contract = AsyncMock(return_value="A1B2C3D4")
    return chain


@pytest.fixture
def engine_options() -> QuoteEngineOptions:
    return QuoteEngineOptions(
        contracts={
            "rune/btc-btc": RUNE_BTC_CONTRACT,
            "rune/eth-eth": RUNE_ETH_CONTRACT,
        }
    )


@pytest.fixture
def engine(chain, clock, engine_options) -> QuoteEngine:
    return QuoteEngine(chain, options=engine_options, clock=clock)

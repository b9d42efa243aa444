"""THORNode chain access.

Reads go through the THORNode REST API (CosmWasm smart queries, bank
balances). Writes are delegated to an external ``Signer`` since key material
never lives in this SDK.
"""

import base64
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError

from rujira.config import THORNODE_MAINNET
from rujira.errors import ErrorCode, RujiraError, wrap_error
from rujira.models import Coin, OrderBook, OrderBookEntry, SimulationResult

logger = logging.getLogger(__name__)


class Signer(Protocol):
    """External signing vault."""

    async def get_address(self) -> str:
        ...

    async def execute_contract(
        self,
        contract_address: str,
        msg: dict,
        funds: list[Coin],
        memo: Optional[str] = None,
    ) -> str:
        """Sign and broadcast a contract call. Returns the tx hash."""
        ...


class ChainClient(Protocol):
    """What the quote engine and discovery need from the chain."""

    async def simulate_swap(self, contract_address: str, denom: str, amount: str) -> SimulationResult:
        ...

    async def get_order_book(self, contract_address: str, limit: int = 50) -> OrderBook:
        ...

    async def query_contract(self, contract_address: str, query: dict) -> Any:
        ...

    async def list_contracts_by_code(self, code_id: int, page_limit: int = 100) -> list[str]:
        ...

    async def get_balance(self, address: str, denom: str) -> Coin:
        ...

    async def get_address(self) -> str:
        ...

    async def execute_contract(
        self,
        contract_address: str,
        msg: dict,
        funds: list[Coin],
        memo: Optional[str] = None,
    ) -> str:
        ...


# ============================================================================
# Wire payloads
# ============================================================================


class SmartQueryResponse(BaseModel):
    data: Any = None


class Pagination(BaseModel):
    next_key: Optional[str] = None
    total: Optional[str] = None


class ContractsByCodeResponse(BaseModel):
    contracts: list[str] = Field(default_factory=list)
    pagination: Optional[Pagination] = None


class BalancePayload(BaseModel):
    denom: str = ""
    amount: str = "0"


class BalanceResponse(BaseModel):
    balance: Optional[BalancePayload] = None


class SimulatePayload(BaseModel):
    returned: str
    fee: str = "0"


class BookSide(BaseModel):
    price: str
    total: str = "0"


class BookPayload(BaseModel):
    base: list[BookSide] = Field(default_factory=list)
    quote: list[BookSide] = Field(default_factory=list)


def encode_query(query: dict) -> str:
    """Base64-encode a smart query for the REST path."""
    raw = json.dumps(query, separators=(",", ":")).encode()
    return base64.b64encode(raw).decode()


def _price_key(entry: BookSide) -> Decimal:
    try:
        return Decimal(entry.price)
    except InvalidOperation:
        return Decimal(0)


class ThornodeClient:
    """ChainClient backed by the THORNode REST API."""

    def __init__(
        self,
        rest_url: str = THORNODE_MAINNET,
        signer: Optional[Signer] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.rest_url = rest_url.rstrip("/")
        self.signer = signer
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "ThornodeClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False

    async def _get_json(self, path: str, params: Optional[dict] = None) -> Any:
        client = await self._get_client()
        try:
            response = await client.get(f"{self.rest_url}{path}", params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"THORNode {e.response.status_code} for {path}")
            raise wrap_error(e) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"THORNode request failed for {path}: {type(e).__name__}: {e}")
            raise wrap_error(e, ErrorCode.RPC_ERROR) from e

    @staticmethod
    def _parse(model: type[BaseModel], payload: Any, what: str) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise RujiraError(ErrorCode.RPC_ERROR, f"Malformed {what} response", details=e) from e

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def query_contract(self, contract_address: str, query: dict) -> Any:
        """Run a CosmWasm smart query and return its data field."""
        payload = await self._get_json(
            f"/cosmwasm/wasm/v1/contract/{contract_address}/smart/{encode_query(query)}"
        )
        return self._parse(SmartQueryResponse, payload, "smart query").data

    async def simulate_swap(self, contract_address: str, denom: str, amount: str) -> SimulationResult:
        """Simulate a market swap against a FIN contract."""
        data = await self.query_contract(
            contract_address, {"simulate": {"denom": denom, "amount": str(amount)}}
        )
        parsed = self._parse(SimulatePayload, data, "simulate")
        return SimulationResult(returned=parsed.returned, fee=parsed.fee)

    async def get_order_book(self, contract_address: str, limit: int = 50) -> OrderBook:
        """Fetch the book; the base side holds bids, the quote side asks."""
        data = await self.query_contract(contract_address, {"book": {"limit": limit}})
        book = self._parse(BookPayload, data, "book")

        bids = sorted(book.base, key=_price_key, reverse=True)
        asks = sorted(book.quote, key=_price_key)

        return OrderBook(
            bids=[OrderBookEntry(price=e.price, amount=e.total, total=e.total) for e in bids],
            asks=[OrderBookEntry(price=e.price, amount=e.total, total=e.total) for e in asks],
        )

    async def get_contract_config(self, contract_address: str) -> dict:
        data = await self.query_contract(contract_address, {"config": {}})
        return data if isinstance(data, dict) else {}

    async def list_contracts_by_code(self, code_id: int, page_limit: int = 100) -> list[str]:
        """List every contract instantiated from a code id, following pagination."""
        contracts: list[str] = []
        next_key: Optional[str] = None

        while True:
            params = {"pagination.limit": str(page_limit)}
            if next_key:
                params["pagination.key"] = next_key

            payload = await self._get_json(f"/cosmwasm/wasm/v1/code/{code_id}/contracts", params)
            page = self._parse(ContractsByCodeResponse, payload, "contracts")
            contracts.extend(page.contracts)

            next_key = page.pagination.next_key if page.pagination else None
            if not next_key or not page.contracts:
                break

        logger.debug(f"Code {code_id}: {len(contracts)} contracts")
        return contracts

    async def get_balance(self, address: str, denom: str) -> Coin:
        payload = await self._get_json(
            f"/cosmos/bank/v1beta1/balances/{address}/by_denom", {"denom": denom}
        )
        parsed = self._parse(BalanceResponse, payload, "balance")
        if parsed.balance is None:
            return Coin(denom=denom, amount="0")
        return Coin(denom=parsed.balance.denom or denom, amount=parsed.balance.amount or "0")

    # ------------------------------------------------------------------
    # Signing (delegated)
    # ------------------------------------------------------------------

    def _require_signer(self) -> Signer:
        if self.signer is None:
            raise RujiraError(ErrorCode.MISSING_SIGNER, "A signer is required for this operation")
        return self.signer

    async def get_address(self) -> str:
        return await self._require_signer().get_address()

    async def execute_contract(
        self,
        contract_address: str,
        msg: dict,
        funds: list[Coin],
        memo: Optional[str] = None,
    ) -> str:
        signer = self._require_signer()
        try:
            tx_hash = await signer.execute_contract(contract_address, msg, funds, memo)
        except Exception as e:
            logger.error(f"Contract execution failed on {contract_address}: {e}")
            raise wrap_error(e, ErrorCode.BROADCAST_FAILED) from e

        logger.info(f"Submitted {next(iter(msg), 'call')} to {contract_address}: {tx_hash}")
        return tx_hash

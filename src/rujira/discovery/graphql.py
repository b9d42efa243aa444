"""HTTP client for the Rujira GraphQL indexer.

The indexer runs on Phoenix/Absinthe and serves queries at ``/api/graphql``.
Every failure is raised as an ``IndexerError`` whose ``kind`` drives the
discovery fallback policy.
"""

import logging
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from rujira.config import GRAPHQL_MAINNET
from rujira.discovery.schemas import (
    FinListing,
    GraphQLEnvelope,
    IndexedMarket,
    MarketsResponse,
)
from rujira.errors import IndexerError, IndexerErrorKind

logger = logging.getLogger(__name__)

FIN_MARKETS_QUERY = """
query FinMarkets {
  fin {
    address
    assetBase { asset }
    assetQuote { asset }
    tick
    feeTaker
    feeMaker
  }
}
"""

_AUTH_MARKERS = ("unauthorized", "unauthenticated", "forbidden", "invalid api key")


def _status(error: BaseException) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


# Ordered (predicate, kind) pairs; first match wins
INDEXER_ERROR_RULES: list[tuple[Callable[[BaseException], bool], IndexerErrorKind]] = [
    (lambda e: isinstance(e, (httpx.TimeoutException, TimeoutError)), IndexerErrorKind.TIMEOUT),
    (lambda e: isinstance(e, httpx.TransportError), IndexerErrorKind.NETWORK),
    (lambda e: _status(e) in (401, 403), IndexerErrorKind.AUTH),
    (lambda e: (_status(e) or 0) >= 500, IndexerErrorKind.SERVER),
    (lambda e: _status(e) is not None, IndexerErrorKind.NETWORK),
    (lambda e: isinstance(e, (ValidationError, ValueError)), IndexerErrorKind.PROTOCOL),
]


def classify_indexer_error(error: BaseException) -> IndexerError:
    """Map an exception from an indexer request onto an IndexerError."""
    if isinstance(error, IndexerError):
        return error

    kind = IndexerErrorKind.UNKNOWN
    for predicate, rule_kind in INDEXER_ERROR_RULES:
        if predicate(error):
            kind = rule_kind
            break

    status = _status(error)
    if status is not None:
        message = f"GraphQL request failed: HTTP {status}"
    else:
        message = f"GraphQL request failed: {type(error).__name__}: {error}"

    return IndexerError(kind, message, status_code=status, details=error)


class GraphQLIndexerClient:
    """Indexed discovery API backed by the Rujira GraphQL endpoint."""

    def __init__(
        self,
        endpoint: str = GRAPHQL_MAINNET,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def query(self, query: str, variables: Optional[dict] = None) -> dict[str, Any]:
        """Execute a GraphQL query and return its data block.

        Raises:
            IndexerError: classified transport, HTTP or GraphQL failure
        """
        client = await self._get_client()
        try:
            response = await client.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers=self._headers(),
            )
            response.raise_for_status()
            envelope = GraphQLEnvelope.model_validate(response.json())
        except Exception as e:
            error = classify_indexer_error(e)
            logger.debug(f"Indexer request failed ({error.kind.value}): {error.message}")
            raise error from e

        if envelope.errors:
            message = ", ".join(item.message for item in envelope.errors)
            lowered = message.lower()
            kind = (
                IndexerErrorKind.AUTH
                if any(marker in lowered for marker in _AUTH_MARKERS)
                else IndexerErrorKind.PROTOCOL
            )
            raise IndexerError(kind, f"GraphQL errors: {message}")

        if envelope.data is None:
            raise IndexerError(IndexerErrorKind.PROTOCOL, "GraphQL response has no data")

        return envelope.data

    async def get_markets(self) -> MarketsResponse:
        """List every FIN market known to the indexer."""
        data = await self.query(FIN_MARKETS_QUERY)
        try:
            listing = FinListing.model_validate(data)
        except ValidationError as e:
            raise IndexerError(IndexerErrorKind.PROTOCOL, "Malformed fin market listing", details=e) from e

        markets = [IndexedMarket.from_node(node) for node in listing.fin]
        logger.debug(f"Indexer returned {len(markets)} FIN markets")
        return MarketsResponse(markets=markets)

    async def get_market(self, base_asset: str, quote_asset: str) -> Optional[IndexedMarket]:
        """Find a market by pair, in either orientation.

        The indexer has no single-market query, so this filters the full listing.
        """
        response = await self.get_markets()
        for market in response.markets:
            if market.matches(base_asset, quote_asset):
                return market
        return None

"""Tests for the GraphQL indexer client."""

import json

import httpx
import pytest

from rujira.discovery.graphql import GraphQLIndexerClient, classify_indexer_error
from rujira.discovery.schemas import normalize_asset
from rujira.errors import IndexerError, IndexerErrorKind

ENDPOINT = "https://indexer.example/api/graphql"

FIN_LISTING = {
    "data": {
        "fin": [
            {
                "address": "thor1atom",
                "assetBase": {"asset": "GAIA-ATOM"},
                "assetQuote": {"asset": "THOR.RUNE"},
                "tick": "0.001",
                "feeTaker": 0.0015,
                "feeMaker": "0.00075",
            },
            {
                "address": "thor1usdc",
                "assetBase": {"asset": "ETH-USDC-0XA0B86991C6218B36C1D19D4A2E9EB0CE3606EB48"},
                "assetQuote": {"asset": "THOR.RUNE"},
                "tick": None,
                "feeTaker": None,
                "feeMaker": None,
            },
        ]
    }
}


def make_client(handler, api_key=None) -> GraphQLIndexerClient:
    transport = httpx.MockTransport(handler)
    return GraphQLIndexerClient(
        endpoint=ENDPOINT,
        api_key=api_key,
        http_client=httpx.AsyncClient(transport=transport),
    )


def respond(status=200, payload=None, content=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if content is not None:
            return httpx.Response(status, content=content)
        return httpx.Response(status, json=payload if payload is not None else {})

    return handler


class TestNormalizeAsset:
    """Tests for indexer asset normalization."""

    def test_first_dash_becomes_dot(self):
        """The first dash becomes a dot."""
        assert normalize_asset("GAIA-ATOM") == "GAIA.ATOM"
        assert normalize_asset("ETH-USDC-0XABC") == "ETH.USDC-0XABC"

    def test_dotted_and_plain_unchanged(self):
        """Dotted and plain assets are unchanged."""
        assert normalize_asset("THOR.AUTO") == "THOR.AUTO"
        assert normalize_asset("RUNE") == "RUNE"
        assert normalize_asset("") == ""


class TestGetMarkets:
    """Tests for the FIN market listing."""

    @pytest.mark.asyncio
    async def test_parses_and_normalizes(self):
        """Listings are parsed and normalized."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=FIN_LISTING)

        client = make_client(handler, api_key="secret")
        response = await client.get_markets()

        assert "fin" in seen["body"]["query"]
        assert seen["auth"] == "Bearer secret"

        atom, usdc = response.markets
        assert atom.address == "thor1atom"
        assert (atom.denoms.base, atom.denoms.quote) == ("GAIA.ATOM", "THOR.RUNE")
        assert atom.config.fee_taker == "0.0015"
        assert usdc.denoms.base == "ETH.USDC-0XA0B86991C6218B36C1D19D4A2E9EB0CE3606EB48"
        assert usdc.config.tick is None

    @pytest.mark.asyncio
    async def test_no_auth_header_without_key(self):
        """No auth header is sent without a key."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=FIN_LISTING)

        await make_client(handler).get_markets()
        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_get_market_either_orientation(self):
        """get_market matches either orientation."""
        client = make_client(respond(payload=FIN_LISTING))

        forward = await client.get_market("GAIA.ATOM", "THOR.RUNE")
        reverse = await client.get_market("THOR.RUNE", "GAIA.ATOM")
        missing = await client.get_market("BTC.BTC", "THOR.RUNE")

        assert forward.address == "thor1atom"
        assert reverse.address == "thor1atom"
        assert missing is None


class TestErrorClassification:
    """Tests for IndexerError kinds."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,kind",
        [
            (401, IndexerErrorKind.AUTH),
            (403, IndexerErrorKind.AUTH),
            (500, IndexerErrorKind.SERVER),
            (503, IndexerErrorKind.SERVER),
            (404, IndexerErrorKind.NETWORK),
            (429, IndexerErrorKind.NETWORK),
        ],
    )
    async def test_http_status(self, status, kind):
        """HTTP statuses map to indexer error kinds."""
        client = make_client(respond(status=status))

        with pytest.raises(IndexerError) as exc_info:
            await client.get_markets()

        assert exc_info.value.kind == kind
        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_graphql_errors_are_protocol(self):
        """GraphQL errors are protocol errors."""
        client = make_client(respond(payload={"errors": [{"message": "Cannot query field"}]}))

        with pytest.raises(IndexerError) as exc_info:
            await client.get_markets()

        assert exc_info.value.kind == IndexerErrorKind.PROTOCOL
        assert "Cannot query field" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_graphql_unauthorized_is_auth(self):
        """Unauthorized GraphQL errors are auth errors."""
        client = make_client(respond(payload={"errors": [{"message": "Unauthorized"}]}))

        with pytest.raises(IndexerError) as exc_info:
            await client.get_markets()

        assert exc_info.value.is_auth

    @pytest.mark.asyncio
    async def test_invalid_json_is_protocol(self):
        """Invalid JSON is a protocol error."""
        client = make_client(respond(content=b"<html>gateway</html>"))

        with pytest.raises(IndexerError) as exc_info:
            await client.get_markets()

        assert exc_info.value.kind == IndexerErrorKind.PROTOCOL

    @pytest.mark.asyncio
    async def test_malformed_listing_is_protocol(self):
        """A malformed listing is a protocol error."""
        client = make_client(respond(payload={"data": {"fin": [{"address": "thor1x"}]}}))

        with pytest.raises(IndexerError) as exc_info:
            await client.get_markets()

        assert exc_info.value.kind == IndexerErrorKind.PROTOCOL

    @pytest.mark.asyncio
    async def test_connect_error_is_network(self):
        """Connection failures are network errors."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(IndexerError) as exc_info:
            await make_client(handler).get_markets()

        assert exc_info.value.kind == IndexerErrorKind.NETWORK
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Timeouts are classified as timeouts."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(IndexerError) as exc_info:
            await make_client(handler).get_markets()

        assert exc_info.value.kind == IndexerErrorKind.TIMEOUT

    def test_unclassified_is_unknown(self):
        """Unrecognized exceptions are unknown."""
        assert classify_indexer_error(RuntimeError("bug")).kind == IndexerErrorKind.UNKNOWN

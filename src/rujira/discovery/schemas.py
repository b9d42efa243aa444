"""Indexer payload models."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def normalize_asset(asset: str) -> str:
    """Normalize an indexer asset name to THORChain notation.

    GAIA-ATOM -> GAIA.ATOM, ETH-USDC-0X... -> ETH.USDC-0X...
    Names that already contain a dot are returned unchanged.
    """
    if not asset or "." in asset:
        return asset

    chain, sep, rest = asset.partition("-")
    if sep and chain:
        return f"{chain}.{rest}"
    return asset


class AssetRef(BaseModel):
    asset: str


class FinNode(BaseModel):
    """One entry of the ``fin`` listing as returned by the indexer."""

    address: str
    asset_base: AssetRef = Field(alias="assetBase")
    asset_quote: AssetRef = Field(alias="assetQuote")
    tick: Optional[str] = None
    fee_taker: Optional[str] = Field(default=None, alias="feeTaker")
    fee_maker: Optional[str] = Field(default=None, alias="feeMaker")

    @field_validator("tick", "fee_taker", "fee_maker", mode="before")
    @classmethod
    def stringify_number(cls, v: Any) -> Optional[str]:
        """The indexer serializes decimals as strings or numbers."""
        if v is None:
            return None
        return str(v)


class FinListing(BaseModel):
    fin: list[FinNode] = Field(default_factory=list)


class MarketDenoms(BaseModel):
    base: str
    quote: str


class MarketConfig(BaseModel):
    tick: Optional[str] = None
    fee_taker: Optional[str] = None
    fee_maker: Optional[str] = None


class IndexedMarket(BaseModel):
    """A FIN market with normalized asset names."""

    address: str
    denoms: MarketDenoms
    config: Optional[MarketConfig] = None

    @classmethod
    def from_node(cls, node: FinNode) -> "IndexedMarket":
        return cls(
            address=node.address,
            denoms=MarketDenoms(
                base=normalize_asset(node.asset_base.asset),
                quote=normalize_asset(node.asset_quote.asset),
            ),
            config=MarketConfig(tick=node.tick, fee_taker=node.fee_taker, fee_maker=node.fee_maker),
        )

    def matches(self, base_asset: str, quote_asset: str) -> bool:
        """True for the pair in either orientation."""
        pair = (self.denoms.base, self.denoms.quote)
        return pair in ((base_asset, quote_asset), (quote_asset, base_asset))


class MarketsResponse(BaseModel):
    markets: list[IndexedMarket] = Field(default_factory=list)


class GraphQLErrorItem(BaseModel):
    message: str = ""


class GraphQLEnvelope(BaseModel):
    data: Optional[dict] = None
    errors: Optional[list[GraphQLErrorItem]] = None

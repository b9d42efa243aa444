"""FIN contract discovery.

Sources:
- Rujira GraphQL indexer (primary)
- Chain scan over the FIN code id (fallback)
"""

from rujira.discovery.graphql import GraphQLIndexerClient, classify_indexer_error
from rujira.discovery.schemas import IndexedMarket, MarketsResponse, normalize_asset
from rujira.discovery.service import ContractDiscovery, IndexerClient

__all__ = [
    "ContractDiscovery",
    "GraphQLIndexerClient",
    "IndexerClient",
    "IndexedMarket",
    "MarketsResponse",
    "classify_indexer_error",
    "normalize_asset",
]

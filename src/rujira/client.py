"""Client facade wiring chain access, discovery and quoting together."""

import logging
from typing import Optional

from rujira.chain import ChainClient, Signer, ThornodeClient
from rujira.config import RujiraSettings, get_settings
from rujira.discovery.graphql import GraphQLIndexerClient
from rujira.discovery.service import ContractDiscovery, IndexerClient
from rujira.persistence import ContractStore, JsonFileContractStore
from rujira.swap import QuoteEngine

logger = logging.getLogger(__name__)


class RujiraClient:
    """Entry point for the SDK.

    Usage:
        async with RujiraClient(signer=vault) as client:
            quote = await client.swap.get_quote(QuoteRequest("rune", "btc-btc", "100000000"))
            result = await client.swap.execute(quote)
    """

    def __init__(
        self,
        settings: Optional[RujiraSettings] = None,
        signer: Optional[Signer] = None,
        chain: Optional[ChainClient] = None,
        indexer: Optional[IndexerClient] = None,
        store: Optional[ContractStore] = None,
        contracts: Optional[dict[str, str]] = None,
    ):
        self.settings = settings or get_settings()
        self._owned: list = []

        if chain is None:
            chain = ThornodeClient(
                rest_url=self.settings.resolved_thornode_url,
                signer=signer,
                timeout=self.settings.request_timeout,
            )
            self._owned.append(chain)

        if indexer is None:
            indexer = GraphQLIndexerClient(
                endpoint=self.settings.resolved_graphql_url,
                api_key=self.settings.graphql_api_key,
                timeout=self.settings.request_timeout,
            )
            self._owned.append(indexer)

        if store is None and self.settings.contracts_file:
            store = JsonFileContractStore(self.settings.contracts_file)

        self.chain = chain
        self.indexer = indexer
        self.store = store
        self.discovery = ContractDiscovery(indexer, chain, self.settings.discovery_options())
        self.swap = QuoteEngine(
            chain,
            self.discovery,
            self.settings.quote_engine_options(contracts),
            store=store,
        )
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> "RujiraClient":
        """Load persisted contract addresses. Safe to call more than once."""
        if self._connected:
            return self

        if self.store is not None:
            try:
                persisted = await self.store.load()
            except Exception as e:
                logger.warning(f"Could not load persisted contracts: {e}")
            else:
                added = self.swap.load_contracts(persisted)
                logger.info(f"Loaded {added} persisted contracts")

        self._connected = True
        logger.info(f"Rujira client ready ({self.settings.network})")
        return self

    async def aclose(self) -> None:
        await self.swap.aclose()
        for resource in self._owned:
            await resource.aclose()
        self._connected = False

    async def __aenter__(self) -> "RujiraClient":
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False


def create_client(
    settings: Optional[RujiraSettings] = None,
    signer: Optional[Signer] = None,
    **kwargs,
) -> RujiraClient:
    """Create a client from settings (environment by default)."""
    return RujiraClient(settings=settings, signer=signer, **kwargs)

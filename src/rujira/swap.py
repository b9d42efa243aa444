"""Quote engine for FIN market swaps.

Flow:
1. Validate the request (no I/O)
2. Serve from the quote cache when fresh enough
3. Resolve the FIN contract (known table, then discovery)
4. Simulate the swap and snapshot the order book concurrently
5. Price the quote and cache it

Execution re-checks expiry (with a safety buffer for slow signers) and the
caller's balance before submitting the swap.
"""

import asyncio
import logging
import uuid
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Awaitable, Optional

from rujira.assets import Asset, find_asset, from_base_units
from rujira.cache import Clock, TTLCache, now_ms, quote_cache_key
from rujira.chain import ChainClient
from rujira.config import QuoteEngineOptions
from rujira.discovery.service import ContractDiscovery
from rujira.errors import ErrorCode, RujiraError, wrap_error
from rujira.models import (
    Coin,
    Fees,
    OrderBook,
    QuoteRequest,
    SwapOptions,
    SwapQuote,
    SwapResult,
    SwapTransaction,
    build_swap_msg,
)
from rujira.persistence import ContractStore
from rujira.pricing import calculate_min_return, calculate_rate, estimate_price_impact, has_usable_book
from rujira.routes import EASY_ROUTES, get_route
from rujira.validation import (
    MAX_SLIPPAGE_BPS,
    MIN_SLIPPAGE_BPS,
    parse_amount,
    validate_quote_request,
    validate_slippage,
    validate_thor_address,
)

logger = logging.getLogger(__name__)

ESTIMATED_IMPACT_WARNING = (
    "Price impact is estimated or unknown - orderbook data unavailable. Actual slippage may differ."
)


def generate_quote_id() -> str:
    return f"quote-{uuid.uuid4().hex[:12]}"


def staleness_note(age_ms: int) -> str:
    seconds = (age_ms + 500) // 1000
    return f"Quote is {seconds}s old. Consider refreshing for volatile markets."


class QuoteEngine:
    """Prices, caches and executes FIN swaps."""

    def __init__(
        self,
        chain: ChainClient,
        discovery: Optional[ContractDiscovery] = None,
        options: Optional[QuoteEngineOptions] = None,
        store: Optional[ContractStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.chain = chain
        self.discovery = discovery
        self.options = options or QuoteEngineOptions()
        self._check_options(self.options)
        self.store = store
        self._clock = clock or now_ms
        self._cache: Optional[TTLCache[SwapQuote]] = None
        if self.options.cache_enabled:
            self._cache = TTLCache(
                ttl_ms=self.options.cache_ttl_ms,
                max_size=self.options.cache_max_size,
                clock=self._clock,
            )
        self._persist_tasks: set[asyncio.Task] = set()

    @staticmethod
    def _check_options(options: QuoteEngineOptions) -> None:
        slippage = options.default_slippage_bps
        if (
            isinstance(slippage, bool)
            or not isinstance(slippage, int)
            or not MIN_SLIPPAGE_BPS <= slippage <= MAX_SLIPPAGE_BPS
        ):
            raise RujiraError(
                ErrorCode.INVALID_CONFIG,
                f"default_slippage_bps must be an integer between {MIN_SLIPPAGE_BPS} "
                f"and {MAX_SLIPPAGE_BPS}, got {slippage!r}",
            )

    @property
    def known_contracts(self) -> dict[str, str]:
        """Pair -> address table, including addresses discovered at runtime."""
        return self.options.contracts

    def load_contracts(self, pair_to_address: dict[str, str]) -> int:
        """Merge persisted contracts without overriding configured ones."""
        added = 0
        for key, address in pair_to_address.items():
            if key not in self.options.contracts:
                self.options.contracts[key] = address
                added += 1
        return added

    # ------------------------------------------------------------------
    # Quoting
    # ------------------------------------------------------------------

    async def get_quote(
        self,
        request: QuoteRequest,
        skip_cache: bool = False,
        max_staleness_ms: Optional[int] = None,
    ) -> SwapQuote:
        """Get a swap quote.

        Args:
            request: Pair, base-unit amount and optional slippage/destination
            skip_cache: Always fetch a fresh quote
            max_staleness_ms: Serve a cached quote only if it is at most this old

        Returns:
            SwapQuote; minimum output reflects the request's slippage

        Raises:
            RujiraError: validation errors before any I/O, CONTRACT_NOT_FOUND
                when no market exists, normalized chain errors otherwise
        """
        amount = validate_quote_request(request, self.options.dust_threshold)
        from_asset = self._resolve_asset(request.from_asset)
        to_asset = self._resolve_asset(request.to_asset)
        if from_asset.id == to_asset.id:
            raise RujiraError(ErrorCode.INVALID_PAIR, "Cannot swap asset to itself")

        request = replace(request, slippage_bps=self._effective_slippage(request.slippage_bps))
        key = quote_cache_key(request.from_asset, request.to_asset, request.amount)

        if not skip_cache and self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                served = self._serve_cached(cached, request, max_staleness_ms)
                if served is not None:
                    return served

        quote = await self._fetch_quote(request, from_asset, amount)
        if self._cache is not None:
            self._cache.set(key, quote)
        return quote

    def _serve_cached(
        self,
        cached: SwapQuote,
        request: QuoteRequest,
        max_staleness_ms: Optional[int],
    ) -> Optional[SwapQuote]:
        """Return the cached quote adapted to this request, or None to refetch."""
        now = self._clock()
        if cached.is_expired(now):
            return None

        age = cached.age_ms(now)
        if max_staleness_ms is not None:
            if age <= max_staleness_ms:
                return self._adapt(cached, request)
            logger.debug(f"Cached quote {cached.quote_id} is {age}ms old (max {max_staleness_ms}ms), refetching")
            return None

        quote = self._adapt(cached, request)
        if age > self.options.stale_warning_ms:
            note = staleness_note(age)
            warning = f"{quote.warning} {note}" if quote.warning else note
            quote = replace(quote, warning=warning)
        return quote

    def _adapt(self, cached: SwapQuote, request: QuoteRequest) -> SwapQuote:
        """Re-derive slippage-dependent fields for the caller's request."""
        if cached.request == request:
            return cached
        minimum_output = calculate_min_return(cached.expected_output, request.slippage_bps)
        return replace(cached, request=request, minimum_output=minimum_output)

    async def _fetch_quote(self, request: QuoteRequest, from_asset: Asset, amount: int) -> SwapQuote:
        contract_address = await self._find_contract(request)

        simulation, order_book = await asyncio.gather(
            self._chain_call(self.chain.simulate_swap(contract_address, from_asset.fin, str(amount))),
            self._fetch_order_book(contract_address),
        )

        try:
            expected_output = int(simulation.returned)
        except (TypeError, ValueError) as e:
            raise RujiraError(
                ErrorCode.CONTRACT_ERROR,
                f"Simulation returned a non-integer amount: {simulation.returned!r}",
            ) from e

        price_impact = estimate_price_impact(amount, expected_output, order_book)
        estimated = not has_usable_book(order_book) or price_impact == "unknown"

        now = self._clock()
        quote = SwapQuote(
            request=request,
            expected_output=str(expected_output),
            minimum_output=calculate_min_return(expected_output, request.slippage_bps),
            rate=calculate_rate(amount, expected_output),
            price_impact=price_impact,
            fees=Fees(network="0", protocol=simulation.fee, affiliate="0", total=simulation.fee),
            contract_address=contract_address,
            quote_id=generate_quote_id(),
            created_at=now,
            expires_at=now + self.options.quote_ttl_ms,
            warning=ESTIMATED_IMPACT_WARNING if estimated else None,
        )

        logger.info(
            f"Quote {quote.quote_id}: {request.amount} {request.from_asset} -> "
            f"{quote.expected_output} {request.to_asset} (impact {price_impact})"
        )
        return quote

    async def _fetch_order_book(self, contract_address: str) -> Optional[OrderBook]:
        try:
            return await self.chain.get_order_book(contract_address)
        except Exception as e:
            logger.debug(f"Order book unavailable for {contract_address}, estimating impact: {e}")
            return None

    async def _find_contract(self, request: QuoteRequest) -> str:
        from_id, to_id = request.from_asset, request.to_asset
        known = self.options.contracts

        for key in (f"{from_id}/{to_id}", f"{to_id}/{from_id}"):
            if key in known:
                return known[key]

        address = None
        if self.discovery is not None:
            # Discovery keys pairs by THORChain asset notation
            base = self._resolve_asset(from_id).thorchain
            quote = self._resolve_asset(to_id).thorchain
            # find_market already tries both orientations
            address = await self.discovery.get_contract_address(base, quote)

        if not address:
            raise RujiraError(
                ErrorCode.CONTRACT_NOT_FOUND,
                f"No FIN contract found for pair: {from_id}/{to_id}. "
                "Market may not exist on Rujira or discovery failed.",
                retryable=False,
            )

        known[f"{from_id}/{to_id}"] = address
        logger.info(f"Resolved {from_id}/{to_id} -> {address}")
        self._schedule_persist()
        return address

    def _schedule_persist(self) -> None:
        if self.store is None:
            return
        task = asyncio.ensure_future(self._persist(dict(self.options.contracts)))
        self._persist_tasks.add(task)
        task.add_done_callback(self._persist_tasks.discard)

    async def _persist(self, snapshot: dict[str, str]) -> None:
        try:
            await self.store.save(snapshot)
        except Exception as e:
            logger.warning(f"Failed to persist contracts: {e}")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, quote: SwapQuote, options: Optional[SwapOptions] = None) -> SwapResult:
        """Submit a quoted swap.

        Raises:
            RujiraError: QUOTE_EXPIRED inside the expiry buffer,
                INSUFFICIENT_BALANCE, MISSING_SIGNER, or a broadcast failure
        """
        options = options or SwapOptions()
        buffer_ms = self.options.quote_expiry_buffer_ms

        now = self._clock()
        if now > quote.expires_at - buffer_ms:
            if now > quote.expires_at:
                message = "Quote has expired. Please get a new quote."
            else:
                message = (
                    f"Quote is about to expire (within {buffer_ms}ms safety buffer). "
                    "Please get a new quote to ensure execution completes."
                )
            raise RujiraError(ErrorCode.QUOTE_EXPIRED, message)

        validate_slippage(options.slippage_bps)
        from_asset = self._resolve_asset(quote.request.from_asset)

        if not options.skip_balance_validation:
            await self._validate_balance(quote.request.from_asset, quote.request.amount)

        slippage_bps = options.slippage_bps
        if slippage_bps is None:
            slippage_bps = self._effective_slippage(quote.request.slippage_bps)
        min_return = calculate_min_return(quote.expected_output, slippage_bps)

        msg = build_swap_msg(min_return, quote.request.destination)
        funds = [Coin(denom=from_asset.fin, amount=quote.request.amount)]

        tx_hash = await self._chain_call(
            self.chain.execute_contract(quote.contract_address, msg, funds, options.memo),
            ErrorCode.BROADCAST_FAILED,
        )

        logger.info(f"Executed {quote.quote_id}: tx {tx_hash} (min_return {min_return})")
        return SwapResult(
            tx_hash=tx_hash,
            status="pending",
            from_amount=quote.request.amount,
            fee=quote.fees.total,
            timestamp=self._clock(),
        )

    async def execute_swap(self, request: QuoteRequest, options: Optional[SwapOptions] = None) -> SwapResult:
        """Quote and execute in one step."""
        quote = await self.get_quote(request)
        return await self.execute(quote, options)

    async def build_transaction(self, request: QuoteRequest) -> SwapTransaction:
        """Quote and return the unsigned FIN swap call for an external signer."""
        quote = await self.get_quote(request)
        from_asset = self._resolve_asset(request.from_asset)
        return SwapTransaction(
            contract_address=quote.contract_address,
            msg=build_swap_msg(quote.minimum_output, request.destination),
            funds=[Coin(denom=from_asset.fin, amount=request.amount)],
        )

    async def easy_swap(
        self,
        amount: str,
        destination: str,
        route: Optional[str] = None,
        from_asset: Optional[str] = None,
        to_asset: Optional[str] = None,
        max_slippage_percent: Optional[Any] = None,
    ) -> SwapResult:
        """Swap along a named route or an explicit pair.

        The balance is checked once up front, so execution skips the second check.
        """
        destination = validate_thor_address(destination)

        if route:
            easy_route = get_route(route)
            if easy_route is None:
                raise RujiraError(
                    ErrorCode.INVALID_PAIR,
                    f"Unknown easy route: {route}. Use list_routes() to see available routes.",
                )
            from_asset, to_asset = easy_route.from_asset, easy_route.to_asset
        elif not (from_asset and to_asset):
            raise RujiraError(
                ErrorCode.INVALID_PAIR,
                "easy_swap needs either a route or both from_asset and to_asset",
            )

        parse_amount(amount)
        await self._validate_balance(from_asset, amount)

        slippage_bps = None
        if max_slippage_percent is not None:
            percent = Decimal(str(max_slippage_percent))
            slippage_bps = int((percent * 100).to_integral_value(rounding=ROUND_HALF_UP))

        quote = await self.get_quote(
            QuoteRequest(
                from_asset=from_asset,
                to_asset=to_asset,
                amount=amount,
                slippage_bps=slippage_bps,
                destination=destination,
            )
        )
        return await self.execute(quote, SwapOptions(skip_balance_validation=True))

    async def _validate_balance(self, asset_id: str, amount: str) -> None:
        asset = self._resolve_asset(asset_id)

        address = await self._chain_call(self.chain.get_address())
        balance = await self._chain_call(self.chain.get_balance(address, asset.fin))

        required = int(amount)
        available = int(balance.amount or "0")
        if available < required:
            raise RujiraError(
                ErrorCode.INSUFFICIENT_BALANCE,
                f"Insufficient {asset.ticker} balance. "
                f"Required: {from_base_units(required, asset.decimals)}, "
                f"Available: {from_base_units(available, asset.decimals)}",
                details={
                    "asset": asset_id,
                    "denom": asset.fin,
                    "required": str(required),
                    "available": str(available),
                    "shortfall": str(required - available),
                },
            )

    # ------------------------------------------------------------------
    # Batch quoting
    # ------------------------------------------------------------------

    async def batch_get_quotes(
        self,
        route_names: list[str],
        amount: str,
        destination: Optional[str] = None,
    ) -> dict[str, Optional[SwapQuote]]:
        """Quote several named routes, a few at a time.

        A route that is unknown or fails maps to None; the batch never raises.
        """
        results: dict[str, Optional[SwapQuote]] = {}
        chunk_size = max(1, self.options.batch_concurrency)

        for i in range(0, len(route_names), chunk_size):
            chunk = route_names[i:i + chunk_size]
            quotes = await asyncio.gather(
                *(self._quote_route(name, amount, destination) for name in chunk)
            )
            results.update(zip(chunk, quotes))

        return results

    async def get_all_route_quotes(
        self,
        amount: str,
        destination: Optional[str] = None,
    ) -> dict[str, Optional[SwapQuote]]:
        return await self.batch_get_quotes(list(EASY_ROUTES), amount, destination)

    async def _quote_route(self, route_name: str, amount: str, destination: Optional[str]) -> Optional[SwapQuote]:
        route = get_route(route_name)
        if route is None:
            logger.debug(f"Unknown route {route_name}")
            return None

        try:
            return await self.get_quote(
                QuoteRequest(
                    from_asset=route.from_asset,
                    to_asset=route.to_asset,
                    amount=amount,
                    destination=destination,
                )
            )
        except Exception as e:
            logger.warning(f"Quote for route {route_name} failed: {e}")
            return None

    # ------------------------------------------------------------------
    # Cache and lifecycle
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    def invalidate_pair(self, from_asset: str, to_asset: str) -> int:
        """Drop every cached quote for a pair, whatever the amount."""
        if self._cache is None:
            return 0
        return self._cache.invalidate_by_prefix(f"{from_asset}/{to_asset}/")

    def get_cache_stats(self) -> Optional[dict]:
        return self._cache.stats() if self._cache is not None else None

    async def aclose(self) -> None:
        """Wait for pending background persistence."""
        if self._persist_tasks:
            await asyncio.gather(*self._persist_tasks)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _effective_slippage(self, slippage_bps: Optional[int]) -> int:
        return self.options.default_slippage_bps if slippage_bps is None else slippage_bps

    @staticmethod
    def _resolve_asset(identifier: str) -> Asset:
        asset = find_asset(identifier)
        if asset is None:
            raise RujiraError(ErrorCode.INVALID_ASSET, f"Unknown asset: {identifier}")
        return asset

    @staticmethod
    async def _chain_call(awaitable: Awaitable, default_code: ErrorCode = ErrorCode.NETWORK_ERROR) -> Any:
        try:
            return await awaitable
        except RujiraError:
            raise
        except Exception as e:
            raise wrap_error(e, default_code) from e

"""
Pool lifecycle management: lookup, creation, address resolution, minting
and post-mint price verification.

Each provisioning call walks one pool through

    UNKNOWN -> EXISTS | ABSENT -> READY_FOR_LIQUIDITY -> LIQUIDITY_MINTED

All token ordering goes through tokens.ordering; amounts and prices passed
in are always in logical (caller) order.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from web3 import Web3

from ..chain.client import ChainClient, TransactionResult, topic_bytes
from ..chain.gas import POOL_GAS_OVERHEAD
from ..config.protocols import event_topic
from ..errors import AMMCallReverted, PoolAddressUnresolved
from ..pricing.price_model import PriceVerification, to_human_price, to_raw_price, verify_pool_price
from ..pricing.units import format_units
from ..pricing.v3_math import (
    align_tick_down,
    align_tick_up,
    encode_sqrt_price_x96,
    full_range_ticks,
    sqrt_price_x96_to_price,
    tick_to_price,
)
from ..tokens.ordering import CanonicalOrdering, order_tokens
from ..tokens.token_manager import TokenManager
from .amm import AMMStrategy, MintParams, split_pool_state

logger = logging.getLogger(__name__)

INITIALIZE_TOPIC = event_topic("Initialize(uint160,int24)")
TRANSFER_TOPIC = event_topic("Transfer(address,address,uint256)")


class PoolState(Enum):
    """Lifecycle state of a pool within one provisioning call."""
    UNKNOWN = "unknown"
    EXISTS = "exists"
    ABSENT = "absent"
    READY_FOR_LIQUIDITY = "ready_for_liquidity"
    LIQUIDITY_MINTED = "liquidity_minted"


@dataclass
class PoolCreationResult:
    pool_address: str
    tx_hash: str
    receipt: Any
    sqrt_price_x96: int
    resolved_by: str


@dataclass
class MintResult:
    token_id: Optional[int]
    tx_hash: str
    receipt: Any
    amount0: int
    amount1: int
    tick_lower: int
    tick_upper: int


@dataclass
class LiquidityResult:
    """Outcome of create_pool_and_add_liquidity."""
    pool_address: str
    ordering: CanonicalOrdering
    state: PoolState
    mint: MintResult
    created: bool = False
    creation_tx_hash: Optional[str] = None
    verification: Optional[PriceVerification] = None
    transitions: List[PoolState] = field(default_factory=list)

    @property
    def tokens_inverted(self) -> bool:
        return self.ordering.needs_reorder


def _is_zero_address(address: Optional[str]) -> bool:
    return not address or int(address, 16) == 0


class PoolManager:
    """
    Creates pools and mints positions through an injected AMM strategy.

    Args:
        client: Chain client of the signing account
        token_manager: Token metadata and allowance manager
        amm: AMM variant strategy
        position_manager_address: Non-fungible position manager address
        factory_address: Pool factory; resolved from the position manager if empty
        gas_limits: Fallback gas limits keyed by operation name
        tick_width_steps: Half-width of centered ranges in tick spacings
        deadline_minutes: Mint deadline from now
        poll_attempts: Factory polls when resolving a new pool's address
        poll_interval: Seconds between factory polls
        price_tolerance: Fractional deviation accepted by price verification
    """

    def __init__(
        self,
        client: ChainClient,
        token_manager: TokenManager,
        amm: AMMStrategy,
        position_manager_address: str,
        factory_address: Optional[str] = None,
        gas_limits: Optional[Dict[str, int]] = None,
        tick_width_steps: int = 10,
        deadline_minutes: int = 20,
        poll_attempts: int = 8,
        poll_interval: float = 1.5,
        price_tolerance: Decimal = Decimal("0.01"),
    ):
        self.client = client
        self.token_manager = token_manager
        self.amm = amm
        self.position_manager_address = Web3.to_checksum_address(position_manager_address)
        self.position_manager = client.contract(self.position_manager_address, amm.position_manager_abi)
        self.factory_address = factory_address or None
        self.gas_limits = gas_limits or {}
        self.tick_width_steps = tick_width_steps
        self.deadline_minutes = deadline_minutes
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self.price_tolerance = price_tolerance
        self._factory = None
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def init_factory(self):
        """
        Resolve the pool factory contract.

        Prefers the configured address, then the position manager's
        ``factory()``. Returns None when neither is available.
        """
        if self._factory is not None:
            return self._factory

        address = self.factory_address
        if _is_zero_address(address):
            try:
                address = await self.client.call(self.position_manager.functions.factory())
            except Exception as e:
                self.logger.warning(f"⚠️ Cannot determine pool factory address: {e}")
                return None

        if _is_zero_address(address):
            self.logger.warning("⚠️ Pool factory address unavailable; pool existence checks disabled")
            return None

        self.factory_address = Web3.to_checksum_address(address)
        self._factory = self.client.contract(self.factory_address, self.amm.factory_abi)
        return self._factory

    async def _lookup_pool(self, ordering: CanonicalOrdering, fee: int) -> Optional[str]:
        factory = await self.init_factory()
        if factory is None:
            return None
        try:
            address = await self.client.call(
                self.amm.get_pool(factory, ordering.amm_token0, ordering.amm_token1, fee)
            )
        except Exception as e:
            self.logger.warning(f"⚠️ Pool lookup failed: {e}")
            return None
        if _is_zero_address(address):
            return None
        return Web3.to_checksum_address(address)

    async def get_pool(self, token_a: str, token_b: str, fee: int = 3000) -> Optional[str]:
        """Existing pool for a pair (any order), or None when absent or unknowable."""
        return await self._lookup_pool(order_tokens(token_a, token_b), fee)

    async def get_pool_state(self, pool_address: str) -> Tuple[int, int]:
        """(sqrtPriceX96, tick) of a pool."""
        pool = self.client.contract(pool_address, self.amm.pool_abi)
        return split_pool_state(await self.client.call(self.amm.pool_state(pool)))

    async def get_pool_price(self, pool_address: str, decimals0: int = 18, decimals1: int = 18) -> Decimal:
        """Human token1-per-token0 price of a pool in AMM order."""
        sqrt_price_x96, _tick = await self.get_pool_state(pool_address)
        return to_human_price(sqrt_price_x96_to_price(sqrt_price_x96), decimals0, decimals1)

    async def get_logical_pool_price(self, pool_address: str, token_a: str, token_b: str) -> Decimal:
        """Pool price as token_b per token_a."""
        ordering = order_tokens(token_a, token_b)
        decimals0, decimals1 = await self._amm_decimals(ordering, token_a, token_b)
        amm_price = await self.get_pool_price(pool_address, decimals0, decimals1)
        return ordering.to_logical_price(amm_price)

    async def _amm_decimals(self, ordering: CanonicalOrdering, token_a: str, token_b: str) -> Tuple[int, int]:
        info_a = await self.token_manager.load_token(token_a)
        info_b = await self.token_manager.load_token(token_b)
        return ordering.to_amm_decimals(info_a.decimals, info_b.decimals)

    async def create_pool(
        self, token_a: str, token_b: str, logical_price: Decimal, fee: int = 3000
    ) -> PoolCreationResult:
        """
        Create and initialize a pool at a logical token_b-per-token_a price.

        Falls back to ``factory.createPool`` plus ``pool.initialize`` when the
        position manager's combined call reverts.

        Raises:
            AMMCallReverted: If both creation paths fail
            PoolAddressUnresolved: If the new pool's address cannot be found
        """
        ordering = order_tokens(token_a, token_b)
        decimals0, decimals1 = await self._amm_decimals(ordering, token_a, token_b)
        amm_price = ordering.to_amm_price(logical_price)
        sqrt_price_x96 = encode_sqrt_price_x96(to_raw_price(amm_price, decimals0, decimals1))

        symbol_a = self.token_manager.symbol_of(token_a)
        symbol_b = self.token_manager.symbol_of(token_b)
        self.logger.info(
            f"🏗️ Creating {self.amm.name} pool {symbol_a}/{symbol_b}"
            f"{f' (fee {fee})' if self.amm.fee_tiered else ''}"
        )
        if ordering.needs_reorder:
            self.logger.info(
                f"⚠️ AMM inverts token order: 1 {symbol_b} = {amm_price:.6f} {symbol_a} "
                f"(logical 1 {symbol_a} = {Decimal(logical_price):.6f} {symbol_b})"
            )
        self.logger.info(f"   Initial sqrtPriceX96: {sqrt_price_x96}")

        fn = self.amm.create_and_initialize(
            self.position_manager, ordering.amm_token0, ordering.amm_token1, fee, sqrt_price_x96
        )
        try:
            result = await self.client.send(
                fn,
                gas_fallback=self.gas_limits.get("create_pool", 5000000),
                gas_overhead=POOL_GAS_OVERHEAD,
                description=f"Create pool {symbol_a}/{symbol_b}",
                revert_error=AMMCallReverted,
            )
        except AMMCallReverted as e:
            self.logger.warning(
                "⚠️ createAndInitializePoolIfNecessary failed, trying factory.createPool + pool.initialize"
            )
            return await self._create_via_factory(ordering, fee, sqrt_price_x96, e)

        pool_address, resolved_by = await self.resolve_pool_address(ordering, fee, result)
        self.logger.info(f"✅ Pool created at {pool_address} (resolved by {resolved_by})")
        return PoolCreationResult(
            pool_address=pool_address,
            tx_hash=result.tx_hash,
            receipt=result.receipt,
            sqrt_price_x96=sqrt_price_x96,
            resolved_by=resolved_by,
        )

    async def _create_via_factory(
        self,
        ordering: CanonicalOrdering,
        fee: int,
        sqrt_price_x96: int,
        original_error: AMMCallReverted,
    ) -> PoolCreationResult:
        factory = await self.init_factory()
        if factory is None:
            raise original_error

        create_limit = self.gas_limits.get("create_pool", 5000000)
        try:
            created = await self.client.send(
                self.amm.create_pool(factory, ordering.amm_token0, ordering.amm_token1, fee),
                gas_fallback=create_limit,
                gas_overhead=POOL_GAS_OVERHEAD,
                description="Factory createPool",
                revert_error=AMMCallReverted,
            )
        except AMMCallReverted as e:
            self.logger.error(f"❌ Factory createPool failed: {e}")
            raise original_error from e

        pool_address = self._pool_from_created_event(created.logs, ordering, fee)
        if pool_address is None:
            pool_address = await self._lookup_pool(ordering, fee)
        if pool_address is None:
            self.logger.error("❌ Could not resolve new pool address after createPool")
            raise original_error

        pool = self.client.contract(pool_address, self.amm.pool_abi)
        initialized = await self.client.send(
            pool.functions.initialize(sqrt_price_x96),
            gas_fallback=create_limit,
            gas_overhead=POOL_GAS_OVERHEAD,
            description="Pool initialize",
            revert_error=AMMCallReverted,
        )
        self.logger.info(f"✅ Pool created via factory at {pool_address}")
        return PoolCreationResult(
            pool_address=pool_address,
            tx_hash=initialized.tx_hash,
            receipt=initialized.receipt,
            sqrt_price_x96=sqrt_price_x96,
            resolved_by="factory_create",
        )

    def _pool_from_created_event(
        self, logs: List[Dict], ordering: CanonicalOrdering, fee: int
    ) -> Optional[str]:
        topic = self.amm.pool_created_topic
        for log in logs:
            topics = log.get("topics") or []
            if not topics or "0x" + topic_bytes(topics[0]).hex() != topic:
                continue
            try:
                address = self.amm.decode_pool_created(log, ordering.amm_token0, ordering.amm_token1, fee)
            except Exception as e:
                self.logger.debug(f"Undecodable pool creation event: {e}")
                continue
            if address and not _is_zero_address(address):
                return address
        return None

    async def resolve_pool_address(
        self, ordering: CanonicalOrdering, fee: int, result: TransactionResult
    ) -> Tuple[str, str]:
        """
        Determine the address of a newly created pool.

        Tried in order: the pool's Initialize event, a bounded factory poll,
        the factory's creation event, and a last factory view call.

        Returns:
            (pool address, name of the strategy that found it)

        Raises:
            PoolAddressUnresolved: When every strategy fails
        """
        for log in result.logs:
            topics = log.get("topics") or []
            if topics and "0x" + topic_bytes(topics[0]).hex() == INITIALIZE_TOPIC and log.get("address"):
                return Web3.to_checksum_address(log["address"]), "initialize_event"

        for attempt in range(self.poll_attempts):
            address = await self._lookup_pool(ordering, fee)
            if address:
                return address, "factory_poll"
            if attempt < self.poll_attempts - 1:
                self.logger.info("⏳ Waiting for pool to be indexed...")
                await asyncio.sleep(self.poll_interval)

        address = self._pool_from_created_event(result.logs, ordering, fee)
        if address:
            return address, "pool_created_event"

        address = await self._lookup_pool(ordering, fee)
        if address:
            return address, "factory_view"

        raise PoolAddressUnresolved(
            f"Pool address for {ordering.amm_token0}/{ordering.amm_token1} not found after creation",
            tx_hash=result.tx_hash,
        )

    async def get_tick_spacing(self, pool_address: str) -> int:
        pool = self.client.contract(pool_address, self.amm.pool_abi)
        return int(await self.client.call(pool.functions.tickSpacing()))

    async def compute_tick_range(
        self, pool_address: str, tick_spacing: int, tick_width_steps: Optional[int] = None
    ) -> Tuple[int, int]:
        """
        Tick range for a new position.

        Fee-tiered AMMs with a positive step count centre the range on the
        current tick; otherwise the full range aligned inward is used.
        tick_width_steps overrides the manager's default for this call.
        """
        steps = self.tick_width_steps if tick_width_steps is None else tick_width_steps
        min_tick, max_tick = full_range_ticks(tick_spacing)
        if not self.amm.uses_centered_range(steps):
            return min_tick, max_tick

        _sqrt_price, current_tick = await self.get_pool_state(pool_address)
        width = tick_spacing * steps
        lower = max(align_tick_down(current_tick - width, tick_spacing), min_tick)
        upper = min(align_tick_up(current_tick + width, tick_spacing), max_tick)
        if lower >= upper:
            # current tick outside the usable range: one spacing inside the nearest bound
            if current_tick >= max_tick:
                lower, upper = max_tick - tick_spacing, max_tick
            else:
                lower, upper = min_tick, min_tick + tick_spacing
        return lower, upper

    async def mint_position(
        self,
        token_a: str,
        token_b: str,
        amount_a: int,
        amount_b: int,
        pool_address: str,
        fee: int = 3000,
        tick_width_steps: Optional[int] = None,
    ) -> MintResult:
        """
        Mint a liquidity position with logical-order amounts.

        Minimum amounts are zero. A missing position id in the receipt is
        logged but not an error.

        Raises:
            AMMCallReverted: If the mint reverts
        """
        ordering = order_tokens(token_a, token_b)
        amount0, amount1 = ordering.to_amm_amounts(amount_a, amount_b)

        tick_spacing = await self.get_tick_spacing(pool_address)
        tick_lower, tick_upper = await self.compute_tick_range(pool_address, tick_spacing, tick_width_steps)

        await self.token_manager.ensure_allowance(
            ordering.amm_token0, self.position_manager_address, amount0, "Position Manager (token0)"
        )
        await self.token_manager.ensure_allowance(
            ordering.amm_token1, self.position_manager_address, amount1, "Position Manager (token1)"
        )

        token0 = await self.token_manager.load_token(ordering.amm_token0)
        token1 = await self.token_manager.load_token(ordering.amm_token1)
        self.logger.info(f"💧 Minting liquidity position in {pool_address}")
        self.logger.info(
            f"   Tick range: [{tick_lower}, {tick_upper}] "
            f"(raw price {tick_to_price(tick_lower):.6g} - {tick_to_price(tick_upper):.6g})"
        )
        self.logger.info(
            f"   AMM amounts: {format_units(amount0, token0.decimals)} {token0.symbol} / "
            f"{format_units(amount1, token1.decimals)} {token1.symbol}"
        )

        params = MintParams(
            token0=ordering.amm_token0,
            token1=ordering.amm_token1,
            fee=fee,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            amount0_desired=amount0,
            amount1_desired=amount1,
            amount0_min=0,
            amount1_min=0,
            recipient=self.client.address,
            deadline=int(time.time()) + self.deadline_minutes * 60,
        )
        result = await self.client.send(
            self.amm.mint(self.position_manager, params),
            gas_fallback=self.gas_limits.get("mint_position", 1000000),
            gas_overhead=POOL_GAS_OVERHEAD,
            description=f"Mint {token0.symbol}/{token1.symbol} position",
            revert_error=AMMCallReverted,
        )

        token_id = self._extract_token_id(result.logs)
        if token_id is None:
            self.logger.warning("⚠️ Position minted but no position id found in the receipt")
        else:
            self.logger.info(f"✅ Position minted (NFT ID: {token_id})")

        return MintResult(
            token_id=token_id,
            tx_hash=result.tx_hash,
            receipt=result.receipt,
            amount0=amount0,
            amount1=amount1,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
        )

    def _extract_token_id(self, logs: List[Dict]) -> Optional[int]:
        manager = self.position_manager_address.lower()
        for log in logs:
            topics = log.get("topics") or []
            if str(log.get("address", "")).lower() != manager or len(topics) != 4:
                continue
            if "0x" + topic_bytes(topics[0]).hex() != TRANSFER_TOPIC:
                continue
            return int.from_bytes(topic_bytes(topics[3]), "big")
        return None

    async def verify_price(
        self, pool_address: str, token_a: str, token_b: str, target_price: Decimal
    ) -> PriceVerification:
        """Compare the pool's live logical price with the target. Never raises on deviation."""
        actual = await self.get_logical_pool_price(pool_address, token_a, token_b)
        verification = verify_pool_price(actual, target_price, self.price_tolerance)
        if verification.is_valid:
            self.logger.info(
                f"✅ Pool price {actual:.6f} within tolerance of target {Decimal(target_price):.6f} "
                f"(deviation {verification.deviation_formatted})"
            )
        else:
            self.logger.warning(
                f"⚠️ Pool price {actual:.6f} deviates {verification.deviation_formatted} "
                f"from target {Decimal(target_price):.6f}"
            )
        return verification

    async def create_pool_and_add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a: int,
        amount_b: int,
        logical_price: Decimal,
        fee: int = 3000,
        existing_pool_address: Optional[str] = None,
        tick_width_steps: Optional[int] = None,
    ) -> LiquidityResult:
        """
        Create the pool if needed, mint a position and verify the price.

        Args:
            token_a: Logical token0
            token_b: Logical token1
            amount_a: token_a base units
            amount_b: token_b base units
            logical_price: Target token_b-per-token_a price
            fee: Fee tier (ignored by single-tier AMMs)
            existing_pool_address: Known pool; skips lookup and creation
            tick_width_steps: Centered range half-width for this position

        Returns:
            LiquidityResult
        """
        ordering = order_tokens(token_a, token_b)
        transitions = [PoolState.UNKNOWN]

        def advance(state: PoolState):
            transitions.append(state)
            self.logger.debug(f"Pool {ordering.amm_token0}/{ordering.amm_token1}: {state.value}")

        pool_address = existing_pool_address or await self._lookup_pool(ordering, fee)
        created = False
        creation_tx_hash = None

        if pool_address:
            advance(PoolState.EXISTS)
        else:
            advance(PoolState.ABSENT)
            creation = await self.create_pool(token_a, token_b, logical_price, fee)
            pool_address = creation.pool_address
            creation_tx_hash = creation.tx_hash
            created = True
        advance(PoolState.READY_FOR_LIQUIDITY)

        mint = await self.mint_position(
            token_a, token_b, amount_a, amount_b, pool_address, fee, tick_width_steps
        )
        advance(PoolState.LIQUIDITY_MINTED)

        try:
            verification = await self.verify_price(pool_address, token_a, token_b, logical_price)
        except Exception as e:
            self.logger.warning(f"⚠️ Price verification unavailable: {e}")
            verification = None

        return LiquidityResult(
            pool_address=pool_address,
            ordering=ordering,
            state=PoolState.LIQUIDITY_MINTED,
            mint=mint,
            created=created,
            creation_tx_hash=creation_tx_hash,
            verification=verification,
            transitions=transitions,
        )

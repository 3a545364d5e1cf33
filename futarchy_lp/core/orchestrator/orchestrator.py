"""
Liquidity orchestrator: provisions the six pools of a futarchy proposal.

Pools are processed strictly one after another. A failing pool is recorded
and the run moves on to the next one; only invalid price inputs abort the
whole run before any transaction is sent.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Union

from eth_utils import is_hex_address
from web3 import Web3

from ...adapter.futarchy_adapter import FutarchyAdapter
from ...config.protocols import ProtocolConfig
from ...errors import (
    ErrorHandler,
    InsufficientBaseTokenBalance,
    ProvisioningError,
    UnresolvedTokenError,
)
from ...pools.pool_manager import PoolManager
from ...pricing.price_model import (
    PoolConfig,
    build_pool_configs,
    calculate_conditional_prices,
    normalize_liquidity_amounts,
    rebalance_amounts,
)
from ...pricing.units import format_units
from ...proposals.proposal_manager import Proposal, ProposalManager
from ...tokens.models import TokenRole
from ...tokens.token_manager import TokenManager
from .base import (
    AutomaticDecisions,
    PoolResult,
    PoolStatus,
    ProposalInput,
    ProvisioningDecisions,
    ProvisioningMode,
    ResultListener,
)

logger = logging.getLogger(__name__)


class LiquidityOrchestrator:
    """
    Drives price targets, token supply and pool provisioning for one proposal.

    Args:
        token_manager: Token metadata, balances and allowances
        pool_manager: Pool lifecycle manager bound to one AMM
        proposal_manager: Proposal loader and token discovery
        adapter: Default split adapter (None if the chain has none)
        adapter_factory: Builds an adapter for a per-run address override
        listeners: Result listeners notified after every pool
        error_handler: Classifies and logs per-pool failures
        fee_tiers: Fee tiers accepted by fee-tiered AMMs
    """

    def __init__(
        self,
        token_manager: TokenManager,
        pool_manager: PoolManager,
        proposal_manager: ProposalManager,
        adapter: Optional[FutarchyAdapter] = None,
        adapter_factory: Optional[Callable[[str], FutarchyAdapter]] = None,
        listeners: Optional[List[ResultListener]] = None,
        error_handler: Optional[ErrorHandler] = None,
        fee_tiers: Optional[Sequence[int]] = None,
    ):
        self.token_manager = token_manager
        self.pool_manager = pool_manager
        self.proposal_manager = proposal_manager
        self.adapter = adapter
        self.adapter_factory = adapter_factory
        self.listeners: List[ResultListener] = list(listeners or [])
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.error_handler = error_handler or ErrorHandler(self.logger)
        self.fee_tiers = tuple(fee_tiers or ProtocolConfig.FEE_TIERS)
        self._override_adapters: Dict[str, FutarchyAdapter] = {}

    def add_listener(self, listener: ResultListener) -> None:
        self.listeners.append(listener)

    def _resolve_decisions(
        self,
        proposal_input: ProposalInput,
        mode: ProvisioningMode,
        decisions: Optional[ProvisioningDecisions],
    ) -> ProvisioningDecisions:
        if decisions is not None:
            return decisions
        if mode == ProvisioningMode.AUTOMATIC:
            return AutomaticDecisions(proposal_input.forced_pools)
        raise ValueError(f"{mode.value} mode requires a ProvisioningDecisions implementation")

    def _adapter_for(self, adapter_address: Optional[str]) -> Optional[FutarchyAdapter]:
        """Split adapter of one run; the default adapter is never replaced."""
        if not adapter_address:
            return self.adapter
        if self.adapter is not None and self.adapter.adapter_address.lower() == adapter_address.lower():
            return self.adapter
        if self.adapter_factory is None:
            raise ValueError("Adapter override given but no adapter factory is configured")

        key = adapter_address.lower()
        if key not in self._override_adapters:
            self._override_adapters[key] = self.adapter_factory(adapter_address)
        adapter = self._override_adapters[key]
        self.logger.info(f"🔧 Using futarchy adapter {adapter.adapter_address} for this run")
        return adapter

    def _validate_fee_tier(self, fee: int) -> None:
        if self.pool_manager.amm.fee_tiered and fee not in self.fee_tiers:
            raise ValueError(
                f"Unsupported fee tier {fee}; expected one of {', '.join(map(str, self.fee_tiers))}"
            )

    async def setup_futarchy_pools(
        self,
        proposal_input: ProposalInput,
        mode: Union[ProvisioningMode, str] = ProvisioningMode.AUTOMATIC,
        decisions: Optional[ProvisioningDecisions] = None,
    ) -> List[PoolResult]:
        """
        Provision the six pools of a proposal.

        Args:
            proposal_input: Proposal, tokens, economic inputs and amounts
            mode: Provisioning mode
            decisions: Operator decisions; required outside automatic mode

        Returns:
            One PoolResult per processed pool, in pool order (empty if the
            operator declines the run)

        Raises:
            ValueError: On a missing decisions object or proposal address, or an
                unsupported fee tier
            PriceComputationError: On invalid price inputs or liquidity amounts
        """
        mode = ProvisioningMode(mode)
        decisions = self._resolve_decisions(proposal_input, mode, decisions)
        prices = calculate_conditional_prices(
            proposal_input.spot_price, proposal_input.event_probability, proposal_input.impact
        )
        fee = proposal_input.fee_tier
        liquidity_amounts = normalize_liquidity_amounts(proposal_input.liquidity_amounts)
        self._validate_fee_tier(fee)
        adapter = self._adapter_for(proposal_input.adapter_address)

        self.logger.info("=" * 60)
        self.logger.info("FUTARCHY POOL SETUP")
        self.logger.info("=" * 60)
        self.logger.info(f"Proposal: {proposal_input.proposal_address}")
        self.logger.info(f"Mode: {mode.value}")
        self.logger.info(
            f"AMM: {self.pool_manager.amm.name}"
            f"{f' | Fee tier: {fee}' if self.pool_manager.amm.fee_tiered else ''}"
        )
        self.logger.info(
            f"📊 Spot {prices.spot_price}, probability {prices.event_probability}, "
            f"impact {prices.impact * 100}% -> YES {prices.yes_price:.6f}, NO {prices.no_price:.6f}"
        )

        proposal = await self._load_proposal(proposal_input, adapter)
        decimals = await self._load_decimals(proposal)
        configs = build_pool_configs(prices, liquidity_amounts, decimals)
        self._log_configs(configs)

        if not await decisions.confirm_run(proposal_input, configs):
            self.logger.info("⏭️ Setup cancelled by operator")
            return []

        results = []
        for config in configs:
            self.logger.info("─" * 40)
            self.logger.info(f"PROCESSING POOL {config.pool_id}: {config.name}")
            self.logger.info("─" * 40)
            try:
                result = await self._provision_pool(
                    config, proposal, decisions, fee, adapter, proposal_input.tick_width_steps
                )
            except Exception as e:
                self.error_handler.log_error(
                    e, {'pool_number': config.pool_id, 'pool_name': config.name}
                )
                result = PoolResult(
                    pool_number=config.pool_id,
                    name=config.name,
                    status=PoolStatus.FAILED,
                    pool_address=config.existing_pool_address,
                    error=str(e),
                )
            results.append(result)
            await self._notify(result)

        succeeded = sum(1 for r in results if r.status == PoolStatus.SUCCESS)
        skipped = sum(1 for r in results if r.status == PoolStatus.SKIPPED)
        self.logger.info(
            f"🏁 Setup finished: {succeeded} provisioned, {skipped} skipped, "
            f"{len(results) - succeeded - skipped} failed"
        )
        return results

    async def _load_proposal(
        self, proposal_input: ProposalInput, adapter: Optional[FutarchyAdapter]
    ) -> Proposal:
        if not proposal_input.proposal_address:
            raise ValueError("A proposal address is required to provision pools")

        try:
            proposal = await self.proposal_manager.load_proposal(proposal_input.proposal_address)
        except ProvisioningError as e:
            self.logger.warning(f"⚠️ Proposal not readable ({e}); discovering conditional tokens")
            proposal = await self.proposal_manager.discover_conditional_tokens(
                proposal_input.proposal_address,
                proposal_input.company_token.address,
                proposal_input.currency_token.address,
                market_name=proposal_input.market_name or "unknown",
                adapter=adapter,
            )
        else:
            if proposal.company_token.lower() != proposal_input.company_token.address.lower():
                self.logger.warning(
                    f"⚠️ Proposal company token {proposal.company_token} differs from input "
                    f"{proposal_input.company_token.address}"
                )
            if proposal.currency_token.lower() != proposal_input.currency_token.address.lower():
                self.logger.warning(
                    f"⚠️ Proposal currency token {proposal.currency_token} differs from input "
                    f"{proposal_input.currency_token.address}"
                )

        for role in TokenRole:
            self.logger.info(f"  {role.label}: {proposal.token_for_role(role)}")
        return proposal

    async def _load_decimals(self, proposal: Proposal) -> Dict[TokenRole, int]:
        decimals = {}
        for role in TokenRole:
            address = proposal.token_for_role(role)
            if address:
                decimals[role] = (await self.token_manager.load_token(address)).decimals
        return decimals

    def _log_configs(self, configs: List[PoolConfig]) -> None:
        self.logger.info("📋 POOL CONFIGURATIONS:")
        for config in configs:
            self.logger.info(
                f"Pool {config.pool_id}: {config.name} | 1 {config.logical_token0.label} = "
                f"{config.target_price:.6f} {config.logical_token1.label} | amounts "
                f"{format_units(config.amount0_wei, config.decimals0)} / "
                f"{format_units(config.amount1_wei, config.decimals1)}"
            )

    async def _provision_pool(
        self,
        config: PoolConfig,
        proposal: Proposal,
        decisions: ProvisioningDecisions,
        fee: int,
        adapter: Optional[FutarchyAdapter],
        tick_width_steps: Optional[int],
    ) -> PoolResult:
        token_a = proposal.token_for_role(config.logical_token0)
        token_b = proposal.token_for_role(config.logical_token1)
        missing = [
            role.label
            for role, address in ((config.logical_token0, token_a), (config.logical_token1, token_b))
            if not address
        ]
        if missing:
            raise UnresolvedTokenError(f"Pool {config.pool_id} has unresolved legs: {', '.join(missing)}")
        config.token0_address = token_a
        config.token1_address = token_b

        existing = await self.pool_manager.get_pool(token_a, token_b, fee)
        if existing:
            config.existing_pool_address = existing
            self.logger.info(f"📍 Pool exists at {existing}")
            if not await decisions.add_to_existing_pool(config, existing):
                self.logger.info("⏭️ Skipping existing pool")
                return PoolResult(
                    pool_number=config.pool_id,
                    name=config.name,
                    status=PoolStatus.SKIPPED,
                    pool_address=existing,
                )
            await self._align_to_live_price(config)
        else:
            self.logger.info("📍 Pool does not exist - will create")
            manual_address = await decisions.existing_pool_address(config)
            if manual_address:
                if is_hex_address(manual_address):
                    config.existing_pool_address = Web3.to_checksum_address(manual_address)
                    self.logger.info(f"✅ Using provided pool {config.existing_pool_address}")
                    await self._align_to_live_price(config)
                else:
                    self.logger.warning(f"⚠️ Invalid pool address {manual_address}; will create a new pool")

        if not await decisions.confirm_pool(config):
            self.logger.info("⏭️ Skipped by operator")
            return PoolResult(
                pool_number=config.pool_id,
                name=config.name,
                status=PoolStatus.SKIPPED,
                pool_address=config.existing_pool_address,
            )

        await self._ensure_leg(adapter, proposal, config.logical_token0, token_a, config.amount0_wei)
        await self._ensure_leg(adapter, proposal, config.logical_token1, token_b, config.amount1_wei)

        outcome = await self.pool_manager.create_pool_and_add_liquidity(
            token_a,
            token_b,
            config.amount0_wei,
            config.amount1_wei,
            config.target_price,
            fee=fee,
            existing_pool_address=config.existing_pool_address,
            tick_width_steps=tick_width_steps,
        )

        return PoolResult(
            pool_number=config.pool_id,
            name=config.name,
            status=PoolStatus.SUCCESS,
            pool_address=outcome.pool_address,
            deviation=outcome.verification.deviation if outcome.verification else None,
            tokens_inverted=outcome.tokens_inverted,
            transaction_hash=outcome.mint.tx_hash,
            token_id=outcome.mint.token_id,
        )

    async def _align_to_live_price(self, config: PoolConfig) -> None:
        """Re-target an existing pool's amounts at its live logical price."""
        try:
            live_price = await self.pool_manager.get_logical_pool_price(
                config.existing_pool_address, config.token0_address, config.token1_address
            )
        except Exception as e:
            self.logger.warning(f"⚠️ Could not fetch current pool price, keeping target amounts: {e}")
            return

        if live_price <= 0:
            self.logger.warning(f"⚠️ Pool reports non-positive price {live_price}, keeping target amounts")
            return

        deviation = abs(live_price - config.target_price) / config.target_price * 100
        self.logger.info(
            f"📊 Live price {live_price:.6f} vs target {config.target_price:.6f} "
            f"(deviation {deviation:.2f}%)"
        )

        amount0, amount1 = rebalance_amounts(
            config.amount0_wei, config.amount1_wei, live_price, config.decimals0, config.decimals1
        )
        self.logger.info(
            f"⚠️ Adjusted amounts for live price: "
            f"{format_units(config.amount0_wei, config.decimals0)} -> {format_units(amount0, config.decimals0)}, "
            f"{format_units(config.amount1_wei, config.decimals1)} -> {format_units(amount1, config.decimals1)}"
        )
        config.current_pool_price = live_price
        config.target_price = live_price
        config.amount0_wei = amount0
        config.amount1_wei = amount1

    async def _ensure_leg(
        self,
        adapter: Optional[FutarchyAdapter],
        proposal: Proposal,
        role: TokenRole,
        token: str,
        amount: int,
    ) -> None:
        if role.is_conditional:
            if adapter is None:
                raise ValueError("Conditional token top-up requires a futarchy adapter")
            await adapter.ensure_conditional_tokens(
                proposal.address,
                proposal.token_for_role(role.collateral),
                token,
                amount,
                role.is_yes,
            )
            return

        info = await self.token_manager.load_token(token)
        balance = await self.token_manager.get_balance(token)
        if balance < amount:
            raise InsufficientBaseTokenBalance(
                token=info.address, required=amount, available=balance, symbol=info.symbol
            )
        self.logger.info(f"✅ Sufficient {info.symbol} balance")

    async def _notify(self, result: PoolResult) -> None:
        for listener in self.listeners:
            try:
                await listener.on_pool_result(result)
            except Exception as e:
                self.logger.warning(f"⚠️ Result listener {listener.__class__.__name__} failed: {e}")

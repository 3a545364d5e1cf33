"""
Builds a complete provisioning object graph from one configuration.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from web3 import Web3

from ...adapter.futarchy_adapter import FutarchyAdapter
from ...chain.client import ChainClient
from ...config.manager import ConfigManager
from ...pools.amm import build_amm_strategy
from ...pools.pool_manager import PoolManager
from ...proposals.proposal_manager import ProposalManager
from ...tokens.token_manager import TokenManager
from .base import LoggingResultListener
from .orchestrator import LiquidityOrchestrator

logger = logging.getLogger(__name__)


def build_provisioner(
    config_manager: ConfigManager,
    web3: Web3,
    signer: Any,
    adapter_address: Optional[str] = None,
    amm: Optional[str] = None,
) -> LiquidityOrchestrator:
    """
    Construct an orchestrator and all of its collaborators.

    Args:
        config_manager: Configuration bound to a chain and an AMM
        web3: Connected Web3 instance for that chain
        signer: Object exposing ``address`` and ``sign_transaction(tx)``
        adapter_address: Split adapter (defaults to the chain's adapter)
        amm: Use another AMM on the same chain

    Returns:
        LiquidityOrchestrator ready to provision pools
    """
    if amm and amm.lower() != config_manager.amm:
        config_manager = ConfigManager(
            chain_id=config_manager.chain_id,
            amm=amm.lower(),
            environment=config_manager.environment,
        )

    chains = config_manager.chains
    protocols = config_manager.protocols
    gas_limits = config_manager.gas_limits

    client = ChainClient(
        web3,
        signer,
        config_manager.get_gas_policy(),
        config_manager.chain_id,
        receipt_timeout=chains.TX_RECEIPT_TIMEOUT,
        explorer_tx_link=config_manager.explorer_tx_link,
        fallback_gas_price=Web3.to_wei(Decimal(str(chains.FALLBACK_GAS_PRICE_GWEI)), "gwei"),
    )
    token_manager = TokenManager(client, approve_gas_limit=gas_limits["approve"])

    def make_adapter(address: str) -> FutarchyAdapter:
        return FutarchyAdapter(
            client,
            token_manager,
            address,
            split_gas_limit=gas_limits["split"],
            merge_gas_limit=gas_limits["merge"],
        )

    default_adapter = adapter_address or config_manager.default_adapter
    adapter = make_adapter(default_adapter) if default_adapter else None
    if adapter is None:
        logger.warning(f"No futarchy adapter for chain {config_manager.chain_id}; splits unavailable")

    contracts = config_manager.get_amm_contracts()
    pool_manager = PoolManager(
        client,
        token_manager,
        build_amm_strategy(config_manager.amm),
        contracts["position_manager"],
        factory_address=contracts.get("pool_factory"),
        gas_limits=gas_limits,
        tick_width_steps=protocols.TICK_WIDTH_STEPS,
        deadline_minutes=protocols.DEADLINE_MINUTES,
        poll_attempts=protocols.POOL_ADDRESS_POLL_ATTEMPTS,
        poll_interval=protocols.POOL_ADDRESS_POLL_INTERVAL,
        price_tolerance=Decimal(str(protocols.PRICE_TOLERANCE_PERCENT)) / 100,
    )

    proposal_manager = ProposalManager(
        client,
        token_manager,
        adapter=adapter,
        factory_address=config_manager.futarchy_factory or None,
        create_gas_limit=gas_limits["create_proposal"],
        category=protocols.PROPOSAL_CATEGORY,
        language=protocols.PROPOSAL_LANGUAGE,
        min_bond=protocols.PROPOSAL_MIN_BOND,
        opening_time_offset=protocols.PROPOSAL_OPENING_TIME_OFFSET,
    )

    logger.info(f"Built provisioner for chain {config_manager.chain_id} on {config_manager.amm}")
    return LiquidityOrchestrator(
        token_manager,
        pool_manager,
        proposal_manager,
        adapter=adapter,
        adapter_factory=make_adapter,
        listeners=[LoggingResultListener()],
        fee_tiers=protocols.FEE_TIERS,
    )

"""
Liquidity orchestrator for futarchy proposal pools.

Usage:
    from futarchy_lp.core.orchestrator import ProposalInput, TokenRef, build_provisioner

    orchestrator = build_provisioner(config, web3, account)
    results = await orchestrator.setup_futarchy_pools(
        ProposalInput(
            proposal_address=proposal,
            company_token=TokenRef(company, "GNO"),
            currency_token=TokenRef(currency, "sDAI"),
            spot_price="0.02173",
            event_probability="0.5",
            impact=10,
        )
    )
"""

from .base import (
    AutomaticDecisions,
    LoggingResultListener,
    PoolResult,
    PoolStatus,
    ProposalInput,
    ProvisioningDecisions,
    ProvisioningMode,
    ResultListener,
    TokenRef,
)
from .factory import build_provisioner
from .orchestrator import LiquidityOrchestrator

__all__ = [
    'AutomaticDecisions',
    'LoggingResultListener',
    'PoolResult',
    'PoolStatus',
    'ProposalInput',
    'ProvisioningDecisions',
    'ProvisioningMode',
    'ResultListener',
    'TokenRef',
    'build_provisioner',
    'LiquidityOrchestrator',
]

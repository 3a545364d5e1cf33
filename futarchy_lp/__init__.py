"""
Liquidity provisioning for futarchy proposal markets.

Computes conditional YES/NO prices from a spot price, an event probability
and an expected impact, and provisions the six AMM pools of a proposal.

Usage:
    from futarchy_lp import ConfigManager, ProposalInput, TokenRef, build_provisioner

    config = ConfigManager(chain_id=100)
    orchestrator = build_provisioner(config, web3, account)
    results = await orchestrator.setup_futarchy_pools(proposal_input)
"""

from .config import ConfigError, ConfigManager
from .core.orchestrator import (
    AutomaticDecisions,
    LiquidityOrchestrator,
    PoolResult,
    PoolStatus,
    ProposalInput,
    ProvisioningDecisions,
    ProvisioningMode,
    ResultListener,
    TokenRef,
    build_provisioner,
)
from .errors import ProvisioningError

__version__ = "0.1.0"

__all__ = [
    'ConfigError',
    'ConfigManager',
    'AutomaticDecisions',
    'LiquidityOrchestrator',
    'PoolResult',
    'PoolStatus',
    'ProposalInput',
    'ProvisioningDecisions',
    'ProvisioningMode',
    'ResultListener',
    'TokenRef',
    'build_provisioner',
    'ProvisioningError',
]

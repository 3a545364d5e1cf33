"""
Base classes and types for the liquidity orchestrator.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from ...pricing.price_model import PoolConfig
from ...pricing.units import Numeric

logger = logging.getLogger(__name__)


class PoolStatus(Enum):
    """Outcome of provisioning one pool."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class ProvisioningMode(Enum):
    """How per-pool decisions are made."""
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    SEMI_AUTOMATIC = "semi-automatic"


@dataclass
class PoolResult:
    """Result of one pool in a provisioning run."""
    pool_number: int
    status: PoolStatus
    name: Optional[str] = None
    pool_address: Optional[str] = None
    deviation: Optional[Decimal] = None
    error: Optional[str] = None
    tokens_inverted: Optional[bool] = None
    transaction_hash: Optional[str] = None
    token_id: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.status == PoolStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary representation."""
        return {
            'pool_number': self.pool_number,
            'name': self.name,
            'status': self.status.value,
            'pool_address': self.pool_address,
            'deviation': str(self.deviation) if self.deviation is not None else None,
            'error': self.error,
            'tokens_inverted': self.tokens_inverted,
            'transaction_hash': self.transaction_hash,
            'token_id': self.token_id,
        }


@dataclass(frozen=True)
class TokenRef:
    """A base token of a proposal as supplied by the caller."""
    address: str
    symbol: Optional[str] = None


@dataclass
class ProposalInput:
    """
    Everything needed to provision the six pools of one proposal.

    liquidity_amounts are token1 amounts in human units, one per pool;
    force_add_liquidity lists pool numbers that get liquidity even when
    their pool already exists. tick_width_steps overrides the configured
    centered range width for this run only.
    """
    proposal_address: Optional[str]
    company_token: TokenRef
    currency_token: TokenRef
    spot_price: Numeric
    event_probability: Numeric
    impact: Numeric
    liquidity_amounts: Sequence[Optional[Numeric]] = field(default_factory=list)
    market_name: Optional[str] = None
    fee_tier: int = 3000
    adapter_address: Optional[str] = None
    force_add_liquidity: Iterable[int] = field(default_factory=list)
    tick_width_steps: Optional[int] = None

    @property
    def forced_pools(self) -> Set[int]:
        return set(self.force_add_liquidity or [])


class ProvisioningDecisions(ABC):
    """
    Per-pool choices that an operator makes outside automatic mode.

    Implementations are supplied by the caller (an interactive front end,
    a config-driven policy); the orchestrator only awaits their answers.
    """

    @abstractmethod
    async def confirm_run(self, proposal_input: ProposalInput, configs: List[PoolConfig]) -> bool:
        """Whether to start provisioning after the targets are computed."""
        pass

    @abstractmethod
    async def add_to_existing_pool(self, config: PoolConfig, pool_address: str) -> bool:
        """Whether to add liquidity to a pool that already exists."""
        pass

    @abstractmethod
    async def existing_pool_address(self, config: PoolConfig) -> Optional[str]:
        """A known pool to use instead of creating one, if any."""
        pass

    @abstractmethod
    async def confirm_pool(self, config: PoolConfig) -> bool:
        """Final confirmation before a pool is provisioned."""
        pass


class AutomaticDecisions(ProvisioningDecisions):
    """Skip existing pools unless forced; never ask."""

    def __init__(self, force_add_liquidity: Optional[Iterable[int]] = None):
        self.force_add_liquidity = set(force_add_liquidity or [])

    async def confirm_run(self, proposal_input, configs) -> bool:
        return True

    async def add_to_existing_pool(self, config, pool_address) -> bool:
        return config.pool_id in self.force_add_liquidity

    async def existing_pool_address(self, config) -> Optional[str]:
        return None

    async def confirm_pool(self, config) -> bool:
        return True


class ResultListener(ABC):
    """Receives each pool result as soon as it is recorded."""

    @abstractmethod
    async def on_pool_result(self, result: PoolResult) -> None:
        pass


class LoggingResultListener(ResultListener):
    """Writes one log line per pool result."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    async def on_pool_result(self, result: PoolResult) -> None:
        if result.status == PoolStatus.SUCCESS:
            deviation = f"{result.deviation:.2f}%" if result.deviation is not None else "n/a"
            self.logger.info(
                f"✅ Pool {result.pool_number} provisioned at {result.pool_address} "
                f"(deviation {deviation}, position {result.token_id})"
            )
        elif result.status == PoolStatus.SKIPPED:
            self.logger.info(f"⏭️ Pool {result.pool_number} skipped ({result.pool_address or 'no pool'})")
        else:
            self.logger.error(f"❌ Pool {result.pool_number} failed: {result.error}")

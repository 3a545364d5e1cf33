"""
AMM variant strategies.

Fee-tiered AMMs (Uniswap V3) key pools by (token0, token1, fee); single-tier
AMMs (Algebra, used by Swapr) key pools by (token0, token1) only and expose
the pool price through ``globalState()`` instead of ``slot0()``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from eth_abi import decode
from web3 import Web3

from ..chain.client import log_data, topic_bytes, topic_to_address
from ..config.protocols import event_topic
from ..contracts.abis import (
    ALGEBRA_FACTORY_ABI,
    ALGEBRA_POOL_ABI,
    ALGEBRA_POSITION_MANAGER_ABI,
    UNISWAP_FACTORY_ABI,
    UNISWAP_POOL_ABI,
    UNISWAP_POSITION_MANAGER_ABI,
)

logger = logging.getLogger(__name__)


@dataclass
class MintParams:
    """Position mint parameters in AMM token order."""
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    amount0_desired: int
    amount1_desired: int
    amount0_min: int
    amount1_min: int
    recipient: str
    deadline: int


class AMMStrategy(ABC):
    """Behaviour that differs between AMM variants."""

    name: str = ""
    fee_tiered: bool = False
    position_manager_abi: list = []
    factory_abi: list = []
    pool_abi: list = []
    pool_created_signature: str = ""

    @property
    def pool_created_topic(self) -> str:
        return event_topic(self.pool_created_signature)

    @abstractmethod
    def get_pool(self, factory, token0: str, token1: str, fee: int):
        """Factory view call returning the pool of a canonical pair."""
        pass

    @abstractmethod
    def create_and_initialize(self, position_manager, token0: str, token1: str, fee: int, sqrt_price_x96: int):
        pass

    @abstractmethod
    def create_pool(self, factory, token0: str, token1: str, fee: int):
        pass

    @abstractmethod
    def mint(self, position_manager, params: MintParams):
        pass

    @abstractmethod
    def pool_state(self, pool):
        """View call returning a tuple that starts with (sqrtPriceX96, tick)."""
        pass

    @abstractmethod
    def decode_pool_created(self, log: Dict, token0: str, token1: str, fee: int) -> Optional[str]:
        """Pool address from a factory creation event for the pair, if it matches."""
        pass

    def uses_centered_range(self, tick_width_steps: int) -> bool:
        return self.fee_tiered and tick_width_steps > 0

    def _pair_matches(self, log: Dict, token0: str, token1: str) -> bool:
        topics = log.get("topics") or []
        if len(topics) < 3:
            return False
        return (
            topic_to_address(topics[1]).lower() == token0.lower()
            and topic_to_address(topics[2]).lower() == token1.lower()
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"


class FeeTieredAMM(AMMStrategy):
    """Uniswap V3 style AMM."""

    name = "uniswap"
    fee_tiered = True
    position_manager_abi = UNISWAP_POSITION_MANAGER_ABI
    factory_abi = UNISWAP_FACTORY_ABI
    pool_abi = UNISWAP_POOL_ABI
    pool_created_signature = "PoolCreated(address,address,uint24,int24,address)"

    def get_pool(self, factory, token0, token1, fee):
        return factory.functions.getPool(token0, token1, fee)

    def create_and_initialize(self, position_manager, token0, token1, fee, sqrt_price_x96):
        return position_manager.functions.createAndInitializePoolIfNecessary(
            token0, token1, fee, sqrt_price_x96
        )

    def create_pool(self, factory, token0, token1, fee):
        return factory.functions.createPool(token0, token1, fee)

    def mint(self, position_manager, params: MintParams):
        return position_manager.functions.mint(
            (
                params.token0,
                params.token1,
                params.fee,
                params.tick_lower,
                params.tick_upper,
                params.amount0_desired,
                params.amount1_desired,
                params.amount0_min,
                params.amount1_min,
                params.recipient,
                params.deadline,
            )
        )

    def pool_state(self, pool):
        return pool.functions.slot0()

    def decode_pool_created(self, log, token0, token1, fee):
        topics = log.get("topics") or []
        if len(topics) < 4 or not self._pair_matches(log, token0, token1):
            return None
        if int.from_bytes(topic_bytes(topics[3]), "big") != fee:
            return None
        _tick_spacing, pool = decode(["int24", "address"], log_data(log))
        return Web3.to_checksum_address(pool)


class SingleTierAMM(AMMStrategy):
    """Algebra (Swapr) style AMM with one pool per pair and dynamic fees."""

    name = "swapr"
    fee_tiered = False
    position_manager_abi = ALGEBRA_POSITION_MANAGER_ABI
    factory_abi = ALGEBRA_FACTORY_ABI
    pool_abi = ALGEBRA_POOL_ABI
    pool_created_signature = "Pool(address,address,address)"

    def get_pool(self, factory, token0, token1, fee):
        return factory.functions.poolByPair(token0, token1)

    def create_and_initialize(self, position_manager, token0, token1, fee, sqrt_price_x96):
        return position_manager.functions.createAndInitializePoolIfNecessary(
            token0, token1, sqrt_price_x96
        )

    def create_pool(self, factory, token0, token1, fee):
        return factory.functions.createPool(token0, token1)

    def mint(self, position_manager, params: MintParams):
        return position_manager.functions.mint(
            (
                params.token0,
                params.token1,
                params.tick_lower,
                params.tick_upper,
                params.amount0_desired,
                params.amount1_desired,
                params.amount0_min,
                params.amount1_min,
                params.recipient,
                params.deadline,
            )
        )

    def pool_state(self, pool):
        return pool.functions.globalState()

    def decode_pool_created(self, log, token0, token1, fee):
        if not self._pair_matches(log, token0, token1):
            return None
        (pool,) = decode(["address"], log_data(log))
        return Web3.to_checksum_address(pool)


AMM_STRATEGIES = {
    FeeTieredAMM.name: FeeTieredAMM,
    SingleTierAMM.name: SingleTierAMM,
}


def build_amm_strategy(name: str) -> AMMStrategy:
    """Instantiate the strategy for an AMM name."""
    key = (name or "").lower()
    if key not in AMM_STRATEGIES:
        raise ValueError(f"Unsupported AMM: {name}")
    return AMM_STRATEGIES[key]()


def split_pool_state(state) -> Tuple[int, int]:
    """(sqrtPriceX96, tick) from a slot0/globalState result."""
    return int(state[0]), int(state[1])

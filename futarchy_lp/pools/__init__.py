from .amm import AMMStrategy, FeeTieredAMM, SingleTierAMM, build_amm_strategy
from .pool_manager import LiquidityResult, PoolManager, PoolState

__all__ = [
    'AMMStrategy',
    'FeeTieredAMM',
    'SingleTierAMM',
    'build_amm_strategy',
    'LiquidityResult',
    'PoolManager',
    'PoolState',
]

"""
Price model, decimal-safe unit conversion and square-root price math.
"""

from .price_model import (
    ConditionalPrices,
    PoolConfig,
    PriceVerification,
    build_pool_configs,
    calculate_conditional_prices,
    verify_pool_price,
)
from .units import from_base_units, to_base_units

__all__ = [
    'ConditionalPrices',
    'PoolConfig',
    'PriceVerification',
    'build_pool_configs',
    'calculate_conditional_prices',
    'verify_pool_price',
    'from_base_units',
    'to_base_units',
]

"""
Concentrated-liquidity price and tick math.

Key concepts:
- sqrtPriceX96: Square root of price in Q96 fixed-point format (96 bits of precision)
- Tick: logarithmic price representation where price = 1.0001^tick
- Tick spacing: positions may only start and end on multiples of the pool's spacing

Both Uniswap V3 and Algebra pools share the same encoding and tick bounds.
"""

import math
from decimal import Decimal
from typing import Tuple

from ..errors import PriceComputationError
from .units import to_decimal

# Q96 constants
Q96 = 2**96

MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342


def encode_sqrt_price_x96(price) -> int:
    """
    Encode a token1-per-token0 price as sqrtPriceX96.

    Computed exactly: floor(sqrt(price * 2^192)) using the price's
    rational representation and an integer square root.

    Args:
        price: Raw price in base units of token1 per base unit of token0

    Returns:
        sqrtPriceX96

    Raises:
        PriceComputationError: If the price is not positive or falls outside
            the AMM's representable range
    """
    value = to_decimal(price)
    if not value.is_finite() or value <= 0:
        raise PriceComputationError(f"Price must be positive to encode: {price}")

    numerator, denominator = value.as_integer_ratio()
    sqrt_price_x96 = math.isqrt((numerator << 192) // denominator)

    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise PriceComputationError(
            f"Price {price} encodes to sqrtPriceX96 {sqrt_price_x96} outside "
            f"[{MIN_SQRT_RATIO}, {MAX_SQRT_RATIO})"
        )
    return sqrt_price_x96


def sqrt_price_x96_to_price(sqrt_price_x96: int) -> Decimal:
    """Decode sqrtPriceX96 into a raw token1-per-token0 price."""
    if sqrt_price_x96 <= 0:
        raise PriceComputationError(f"sqrtPriceX96 must be positive: {sqrt_price_x96}")
    return Decimal(sqrt_price_x96 * sqrt_price_x96) / Decimal(2**192)


def align_tick_down(tick: int, spacing: int) -> int:
    """Largest multiple of spacing that is <= tick."""
    return (tick // spacing) * spacing


def align_tick_up(tick: int, spacing: int) -> int:
    """Smallest multiple of spacing that is >= tick."""
    return -((-tick) // spacing) * spacing


def full_range_ticks(spacing: int) -> Tuple[int, int]:
    """Widest usable range for a spacing, aligned inward from the tick bounds."""
    if spacing <= 0:
        raise PriceComputationError(f"Tick spacing must be positive: {spacing}")
    return align_tick_up(MIN_TICK, spacing), align_tick_down(MAX_TICK, spacing)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """
    Calculate sqrtPriceX96 from tick.

    Integer port of the on-chain TickMath, rounding up like the contract.

    Args:
        tick: The tick value

    Returns:
        sqrtPriceX96
    """
    abs_tick = abs(tick)
    if abs_tick > MAX_TICK:
        raise PriceComputationError(f"Tick out of range: {tick}")

    # Start with Q128 representation
    ratio = 0xFFFCB933BD6FAD37AA2D162D1A594001 if abs_tick & 0x1 else 1 << 128

    # Apply bit shifts based on tick magnitude
    if abs_tick & 0x2:
        ratio = (ratio * 0xFFF97272373D413259A46990580E213A) >> 128
    if abs_tick & 0x4:
        ratio = (ratio * 0xFFF2E50F5F656932EF12357CF3C7FDCC) >> 128
    if abs_tick & 0x8:
        ratio = (ratio * 0xFFE5CACA7E10E4E61C3624EAA0941CD0) >> 128
    if abs_tick & 0x10:
        ratio = (ratio * 0xFFCB9843D60F6159C9DB58835C926644) >> 128
    if abs_tick & 0x20:
        ratio = (ratio * 0xFF973B41FA98C081472E6896DFB254C0) >> 128
    if abs_tick & 0x40:
        ratio = (ratio * 0xFF2EA16466C96A3843EC78B326B52861) >> 128
    if abs_tick & 0x80:
        ratio = (ratio * 0xFE5DEE046A99A2A811C461F1969C3053) >> 128
    if abs_tick & 0x100:
        ratio = (ratio * 0xFCBE86C7900A88AEDCFFC83B479AA3A4) >> 128
    if abs_tick & 0x200:
        ratio = (ratio * 0xF987A7253AC413176F2B074CF7815E54) >> 128
    if abs_tick & 0x400:
        ratio = (ratio * 0xF3392B0822B70005940C7A398E4B70F3) >> 128
    if abs_tick & 0x800:
        ratio = (ratio * 0xE7159475A2C29B7443B29C7FA6E889D9) >> 128
    if abs_tick & 0x1000:
        ratio = (ratio * 0xD097F3BDFD2022B8845AD8F792AA5825) >> 128
    if abs_tick & 0x2000:
        ratio = (ratio * 0xA9F746462D870FDF8A65DC1F90E061E5) >> 128
    if abs_tick & 0x4000:
        ratio = (ratio * 0x70D869A156D2A1B890BB3DF62BAF32F7) >> 128
    if abs_tick & 0x8000:
        ratio = (ratio * 0x31BE135F97D08FD981231505542FCFA6) >> 128
    if abs_tick & 0x10000:
        ratio = (ratio * 0x9AA508B5B7A84E1C677DE54F3E99BC9) >> 128
    if abs_tick & 0x20000:
        ratio = (ratio * 0x5D6AF8DEDB81196699C329225EE604) >> 128
    if abs_tick & 0x40000:
        ratio = (ratio * 0x2216E584F5FA1EA926041BEDFE98) >> 128
    if abs_tick & 0x80000:
        ratio = (ratio * 0x48A170391F7DC42444E8FA2) >> 128

    # Invert if tick is positive
    if tick > 0:
        ratio = ((1 << 256) - 1) // ratio

    # Q128 to Q96, rounding up
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def tick_to_price(tick: int) -> Decimal:
    """Raw token1-per-token0 price at a tick."""
    return sqrt_price_x96_to_price(get_sqrt_ratio_at_tick(tick))

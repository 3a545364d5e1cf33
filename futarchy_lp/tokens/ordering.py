"""
Canonical AMM token ordering.

AMM pools always store the numerically lower address as token0. Every
conversion between a caller's logical order and the pool's order goes
through CanonicalOrdering.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple

from eth_utils import is_hex_address
from web3 import Web3

from ..errors import InvalidTokenPair, PriceComputationError
from ..pricing.units import Numeric, to_decimal


def convert_amm_price(amm_price: Numeric, needs_reorder: bool) -> Decimal:
    """Invert a price when the pair is stored in reverse order."""
    price = to_decimal(amm_price)
    if not needs_reorder:
        return price
    if price <= 0:
        raise PriceComputationError(f"Cannot invert non-positive price: {price}")
    return 1 / price


@dataclass(frozen=True)
class CanonicalOrdering:
    """AMM order of a logical (token_a, token_b) pair."""
    amm_token0: str
    amm_token1: str
    needs_reorder: bool

    def to_amm_price(self, logical_price: Numeric) -> Decimal:
        """Logical token_b-per-token_a price to AMM token1-per-token0."""
        return convert_amm_price(logical_price, self.needs_reorder)

    def to_logical_price(self, amm_price: Numeric) -> Decimal:
        """AMM token1-per-token0 price to logical token_b-per-token_a."""
        return convert_amm_price(amm_price, self.needs_reorder)

    def to_amm_amounts(self, amount_a: int, amount_b: int) -> Tuple[int, int]:
        """Logical (amount_a, amount_b) to AMM (amount0, amount1)."""
        return (amount_b, amount_a) if self.needs_reorder else (amount_a, amount_b)

    def to_amm_decimals(self, decimals_a: int, decimals_b: int) -> Tuple[int, int]:
        return (decimals_b, decimals_a) if self.needs_reorder else (decimals_a, decimals_b)


def _checksum(address: str) -> str:
    if not isinstance(address, str) or not is_hex_address(address):
        raise InvalidTokenPair(f"Invalid token address: {address!r}")
    return Web3.to_checksum_address(address)


def order_tokens(token_a: str, token_b: str) -> CanonicalOrdering:
    """
    Order two token addresses the way the AMM does.

    Args:
        token_a: Logical token0 address
        token_b: Logical token1 address

    Returns:
        CanonicalOrdering with checksummed addresses

    Raises:
        InvalidTokenPair: If either address is invalid or both are the same
    """
    a = _checksum(token_a)
    b = _checksum(token_b)
    if a.lower() == b.lower():
        raise InvalidTokenPair(f"Cannot pair a token with itself: {a}")

    if a.lower() < b.lower():
        return CanonicalOrdering(amm_token0=a, amm_token1=b, needs_reorder=False)
    return CanonicalOrdering(amm_token0=b, amm_token1=a, needs_reorder=True)

"""
Futarchy price model.

Turns a spot price, an event probability and an expected price impact into
the six target pool configurations of a proposal:

1. YES-Company / YES-Currency at the YES price
2. NO-Company / NO-Currency at the NO price
3. YES-Company / Currency at spot * p
4. NO-Company / Currency at spot * (1 - p)
5. YES-Currency / Currency at p
6. NO-Currency / Currency at 1 - p

Prices are quoted as token1 per token0 in human units.
"""

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal, localcontext
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import PriceComputationError
from ..tokens.models import TokenRole
from .units import DECIMAL_PRECISION, Numeric, from_base_units, to_base_units, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_LIQUIDITY_AMOUNT = Decimal("0.000000000001")
DEFAULT_PRICE_TOLERANCE = Decimal("0.01")

POOL_LAYOUT = [
    (1, "YES-Company/YES-Currency (Price-Correlated)", TokenRole.YES_COMPANY, TokenRole.YES_CURRENCY),
    (2, "NO-Company/NO-Currency (Price-Correlated)", TokenRole.NO_COMPANY, TokenRole.NO_CURRENCY),
    (3, "YES-Company/Currency (Expected Value)", TokenRole.YES_COMPANY, TokenRole.CURRENCY),
    (4, "NO-Company/Currency (Expected Value)", TokenRole.NO_COMPANY, TokenRole.CURRENCY),
    (5, "YES-Currency/Currency (Prediction)", TokenRole.YES_CURRENCY, TokenRole.CURRENCY),
    (6, "NO-Currency/Currency (Prediction)", TokenRole.NO_CURRENCY, TokenRole.CURRENCY),
]


@dataclass(frozen=True)
class ConditionalPrices:
    """Validated model inputs and the derived YES/NO prices."""
    spot_price: Decimal
    event_probability: Decimal
    impact: Decimal
    yes_price: Decimal
    no_price: Decimal

    @property
    def expected_yes_company_price(self) -> Decimal:
        return self.spot_price * self.event_probability

    @property
    def expected_no_company_price(self) -> Decimal:
        return self.spot_price * (1 - self.event_probability)


@dataclass(frozen=True)
class PredictionRatio:
    yes_ratio: Decimal
    no_ratio: Decimal
    ratio: Decimal


@dataclass(frozen=True)
class PriceVerification:
    """Outcome of comparing a pool's live price against its target."""
    actual_price: Decimal
    target_price: Decimal
    deviation: Decimal
    is_valid: bool

    @property
    def deviation_formatted(self) -> str:
        return f"{self.deviation:.2f}%"


@dataclass
class PoolConfig:
    """Target state of one of the six proposal pools, in logical token order."""
    pool_id: int
    name: str
    logical_token0: TokenRole
    logical_token1: TokenRole
    target_price: Decimal
    liquidity_amount1: Decimal
    amount0_wei: int
    amount1_wei: int
    decimals0: int
    decimals1: int
    existing_pool_address: Optional[str] = None
    current_pool_price: Optional[Decimal] = None
    token0_address: Optional[str] = None
    token1_address: Optional[str] = None

    @property
    def amount0(self) -> Decimal:
        return from_base_units(self.amount0_wei, self.decimals0)

    @property
    def amount1(self) -> Decimal:
        return from_base_units(self.amount1_wei, self.decimals1)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["logical_token0"] = self.logical_token0.value
        data["logical_token1"] = self.logical_token1.value
        return data


def validate_price_inputs(
    spot_price: Numeric, event_probability: Numeric, impact_percentage: Numeric
) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Validate and normalize the economic inputs.

    Returns:
        (spot, probability, impact as a fraction)

    Raises:
        PriceComputationError: On non-positive spot or probability outside (0, 1)
    """
    spot = to_decimal(spot_price)
    p = to_decimal(event_probability)
    impact = to_decimal(impact_percentage)

    if not (spot.is_finite() and p.is_finite() and impact.is_finite()):
        raise PriceComputationError("Price inputs must be finite numbers")
    if spot <= 0:
        raise PriceComputationError(f"Spot price must be positive: {spot}")
    if not (0 < p < 1):
        raise PriceComputationError(f"Event probability must be in (0, 1): {p}")

    return spot, p, impact / 100


def calculate_conditional_prices(
    spot_price: Numeric, event_probability: Numeric, impact_percentage: Numeric
) -> ConditionalPrices:
    """
    YES price = spot * (1 + impact * (1 - p)); NO price = spot * (1 - impact * p).

    The probability-weighted average of the two always equals the spot price.
    """
    spot, p, impact = validate_price_inputs(spot_price, event_probability, impact_percentage)

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        yes_price = spot * (1 + impact * (1 - p))
        no_price = spot * (1 - impact * p)

    if yes_price <= 0 or no_price <= 0:
        raise PriceComputationError(
            f"Impact {impact * 100}% yields a non-positive conditional price "
            f"(yes={yes_price}, no={no_price})"
        )

    return ConditionalPrices(
        spot_price=spot,
        event_probability=p,
        impact=impact,
        yes_price=yes_price,
        no_price=no_price,
    )


def calculate_prediction_ratio(event_probability: Numeric) -> PredictionRatio:
    """YES/NO odds implied by an event probability."""
    p = to_decimal(event_probability)
    if not (0 < p < 1):
        raise PriceComputationError(f"Event probability must be in (0, 1): {p}")
    return PredictionRatio(yes_ratio=p, no_ratio=1 - p, ratio=p / (1 - p))


def render_amounts(
    amount1: Decimal, price: Decimal, decimals0: int, decimals1: int
) -> Tuple[int, int]:
    """
    Render a token1 amount and its price-implied token0 amount to base units.

    A positive amount that floors to zero on either leg is bumped to one
    base unit and the paired leg recomputed from the price (at least one
    unit), so both legs stay non-zero.
    """
    if price <= 0:
        raise PriceComputationError(f"Price must be positive: {price}")

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        amount0 = amount1 / price
        units1 = to_base_units(amount1, decimals1)
        units0 = to_base_units(amount0, decimals0)

        if amount1 > 0 and units1 == 0:
            units1 = 1
            units0 = max(1, to_base_units(from_base_units(1, decimals1) / price, decimals0))
        if amount0 > 0 and units0 == 0:
            units0 = 1
            units1 = max(1, to_base_units(from_base_units(1, decimals0) * price, decimals1))

    return units0, units1


def rebalance_amounts(
    amount0_wei: int, amount1_wei: int, price: Numeric, decimals0: int, decimals1: int
) -> Tuple[int, int]:
    """
    Recompute a pool's amounts at a new price, anchored on the larger leg.

    The leg that is larger in human units is kept; the other is derived from
    the price.
    """
    price = to_decimal(price)
    if price <= 0:
        raise PriceComputationError(f"Price must be positive: {price}")

    human0 = from_base_units(amount0_wei, decimals0)
    human1 = from_base_units(amount1_wei, decimals1)

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        if human0 >= human1:
            return amount0_wei, max(1, to_base_units(human0 * price, decimals1))
        return max(1, to_base_units(human1 / price, decimals0)), amount1_wei


def normalize_liquidity_amounts(
    liquidity_amounts: Optional[Sequence[Optional[Numeric]]],
) -> List[Decimal]:
    """
    Six token1 amounts in pool order.

    Missing or zero entries become DEFAULT_LIQUIDITY_AMOUNT.

    Raises:
        PriceComputationError: On more than six entries or a negative,
            non-finite or non-numeric amount
    """
    raw_amounts = list(liquidity_amounts or [])
    if len(raw_amounts) > len(POOL_LAYOUT):
        raise PriceComputationError(
            f"Expected at most {len(POOL_LAYOUT)} liquidity amounts, got {len(raw_amounts)}"
        )
    raw_amounts += [None] * (len(POOL_LAYOUT) - len(raw_amounts))

    amounts = []
    for pool_id, raw_amount in enumerate(raw_amounts, start=1):
        try:
            amount = to_decimal(raw_amount) if raw_amount is not None else Decimal(0)
        except PriceComputationError as e:
            raise PriceComputationError(f"Invalid liquidity amount for pool {pool_id}: {e}") from e
        if not amount.is_finite() or amount < 0:
            raise PriceComputationError(f"Invalid liquidity amount for pool {pool_id}: {amount}")
        amounts.append(amount if amount > 0 else DEFAULT_LIQUIDITY_AMOUNT)
    return amounts


def build_pool_configs(
    prices: ConditionalPrices,
    liquidity_amounts: Optional[Sequence[Optional[Numeric]]],
    decimals: Mapping[TokenRole, int],
) -> List[PoolConfig]:
    """
    Build the six pool configurations.

    Args:
        prices: Output of calculate_conditional_prices
        liquidity_amounts: Six token1 amounts; missing or zero entries use a
            minimal default
        decimals: Token decimals per role

    Returns:
        List of six PoolConfig in pool order
    """
    amounts = normalize_liquidity_amounts(liquidity_amounts)

    target_prices = {
        1: prices.yes_price,
        2: prices.no_price,
        3: prices.expected_yes_company_price,
        4: prices.expected_no_company_price,
        5: prices.event_probability,
        6: 1 - prices.event_probability,
    }

    configs = []
    for (pool_id, name, role0, role1), amount1 in zip(POOL_LAYOUT, amounts):
        target_price = target_prices[pool_id]
        decimals0 = decimals.get(role0, 18)
        decimals1 = decimals.get(role1, 18)
        amount0_wei, amount1_wei = render_amounts(amount1, target_price, decimals0, decimals1)

        configs.append(
            PoolConfig(
                pool_id=pool_id,
                name=name,
                logical_token0=role0,
                logical_token1=role1,
                target_price=target_price,
                liquidity_amount1=amount1,
                amount0_wei=amount0_wei,
                amount1_wei=amount1_wei,
                decimals0=decimals0,
                decimals1=decimals1,
            )
        )
        logger.debug(
            f"Pool {pool_id} {name}: price {target_price}, "
            f"amount0 {amount0_wei}, amount1 {amount1_wei}"
        )

    return configs


def verify_pool_price(
    actual_price: Numeric, target_price: Numeric, tolerance: Numeric = DEFAULT_PRICE_TOLERANCE
) -> PriceVerification:
    """Deviation of a live price from its target, in percent."""
    actual = to_decimal(actual_price)
    target = to_decimal(target_price)
    if target <= 0:
        raise PriceComputationError(f"Target price must be positive: {target}")

    deviation = abs(actual - target) / target
    return PriceVerification(
        actual_price=actual,
        target_price=target,
        deviation=deviation * 100,
        is_valid=deviation <= to_decimal(tolerance),
    )


def to_raw_price(human_price: Numeric, decimals0: int, decimals1: int) -> Decimal:
    """Human token1-per-token0 price to a base-unit price."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return to_decimal(human_price).scaleb(decimals1 - decimals0)


def to_human_price(raw_price: Numeric, decimals0: int, decimals1: int) -> Decimal:
    """Base-unit token1-per-token0 price to a human price."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return to_decimal(raw_price).scaleb(decimals0 - decimals1)

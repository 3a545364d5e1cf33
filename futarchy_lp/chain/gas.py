"""
Gas fee and gas limit policy for provisioning transactions.
"""

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Dict, Optional

# Gas overhead added on top of buffered estimates, per operation family
SPLIT_MERGE_GAS_OVERHEAD = 50000
POOL_GAS_OVERHEAD = 100000
PROPOSAL_GAS_OVERHEAD = 200000


@dataclass(frozen=True)
class GasPolicy:
    """
    Fee and limit policy for one chain.

    Effective priority fee is never below ``min_priority_fee_per_gas`` and
    effective max fee is never below twice the effective priority fee.
    """

    min_priority_fee_per_gas: int
    fee_multiplier: Decimal = Decimal("1")
    gas_limit_buffer_percent: int = 30
    fixed_gas_overhead: int = 0

    def priority_fee(self, suggested: Optional[int]) -> int:
        return max(int(suggested or 0), self.min_priority_fee_per_gas)

    def max_fee(self, base_fee: int, priority_fee: int) -> int:
        scaled = (Decimal(2 * base_fee + priority_fee) * self.fee_multiplier).to_integral_value(
            rounding=ROUND_FLOOR
        )
        return max(int(scaled), 2 * priority_fee)

    def fee_params(
        self,
        base_fee: Optional[int],
        suggested_priority_fee: Optional[int] = None,
        gas_price: Optional[int] = None,
    ) -> Dict[str, int]:
        """
        Transaction fee fields for the current network conditions.

        Args:
            base_fee: Latest block base fee, or None on chains without EIP-1559
            suggested_priority_fee: Node-suggested priority fee
            gas_price: Legacy gas price, used when base_fee is None

        Returns:
            Dict with either maxFeePerGas/maxPriorityFeePerGas or gasPrice
        """
        if base_fee is None:
            legacy = int(gas_price or 0)
            scaled = (Decimal(legacy) * self.fee_multiplier).to_integral_value(rounding=ROUND_FLOOR)
            return {"gasPrice": max(int(scaled), self.min_priority_fee_per_gas)}

        priority = self.priority_fee(suggested_priority_fee)
        return {
            "maxFeePerGas": self.max_fee(base_fee, priority),
            "maxPriorityFeePerGas": priority,
        }

    def gas_limit(self, estimate: int, overhead: Optional[int] = None) -> int:
        """Buffered gas limit: estimate plus buffer percent plus fixed overhead."""
        extra = self.fixed_gas_overhead if overhead is None else overhead
        return estimate * (100 + self.gas_limit_buffer_percent) // 100 + extra

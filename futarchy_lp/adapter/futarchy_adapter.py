"""
Split/merge adapter access and conditional token top-ups.

The futarchy adapter converts collateral into equal amounts of YES and NO
conditional tokens (split) and back (merge).
"""

import logging
from typing import Optional

from web3 import Web3

from ..chain.client import ChainClient, TransactionResult
from ..chain.gas import SPLIT_MERGE_GAS_OVERHEAD
from ..contracts.abis import FUTARCHY_ADAPTER_ABI
from ..errors import AdapterCallReverted, InsufficientCollateral
from ..pricing.units import format_units, scale_units
from ..tokens.token_manager import TokenManager

logger = logging.getLogger(__name__)


class FutarchyAdapter:
    """Conditional token supply manager backed by the split/merge adapter."""

    def __init__(
        self,
        client: ChainClient,
        token_manager: TokenManager,
        adapter_address: str,
        split_gas_limit: int = 1500000,
        merge_gas_limit: int = 1500000,
    ):
        if not adapter_address:
            raise ValueError("Futarchy adapter address is required")
        self.client = client
        self.token_manager = token_manager
        self.adapter_address = Web3.to_checksum_address(adapter_address)
        self.adapter = client.contract(self.adapter_address, FUTARCHY_ADAPTER_ABI)
        self.split_gas_limit = split_gas_limit
        self.merge_gas_limit = merge_gas_limit
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def split_tokens(self, proposal: str, collateral: str, amount: int) -> TransactionResult:
        """
        Split collateral into YES and NO conditional tokens.

        Args:
            proposal: Proposal address
            collateral: Collateral token address
            amount: Collateral base units to split

        Returns:
            TransactionResult of the split

        Raises:
            AdapterCallReverted: If the split reverts
        """
        token = await self.token_manager.load_token(collateral)
        self.logger.info(
            f"🔄 Splitting {format_units(amount, token.decimals)} {token.symbol} into YES/NO tokens"
        )

        await self.token_manager.ensure_allowance(
            token.address, self.adapter_address, amount, "Futarchy Adapter"
        )

        fn = self.adapter.functions.splitPosition(
            Web3.to_checksum_address(proposal), token.address, amount
        )
        result = await self.client.send(
            fn,
            gas_fallback=self.split_gas_limit,
            gas_overhead=SPLIT_MERGE_GAS_OVERHEAD,
            description=f"Split {token.symbol}",
            revert_error=AdapterCallReverted,
        )
        self.logger.info(f"✅ Split complete - received YES and NO {token.symbol}")
        return result

    async def merge_tokens(
        self,
        proposal: str,
        collateral: str,
        amount: int,
        yes_token: str,
        no_token: str,
    ) -> TransactionResult:
        """
        Merge equal amounts of YES and NO tokens back into collateral.

        Both approvals are submitted one after the other from the signing
        account before the merge itself.
        """
        token = await self.token_manager.load_token(collateral)
        self.logger.info(
            f"🔄 Merging {format_units(amount, token.decimals)} YES/NO {token.symbol} back to collateral"
        )

        await self.token_manager.ensure_allowance(
            yes_token, self.adapter_address, amount, "Futarchy Adapter (YES)"
        )
        await self.token_manager.ensure_allowance(
            no_token, self.adapter_address, amount, "Futarchy Adapter (NO)"
        )

        fn = self.adapter.functions.mergePositions(
            Web3.to_checksum_address(proposal), token.address, amount
        )
        result = await self.client.send(
            fn,
            gas_fallback=self.merge_gas_limit,
            gas_overhead=SPLIT_MERGE_GAS_OVERHEAD,
            description=f"Merge {token.symbol}",
            revert_error=AdapterCallReverted,
        )
        self.logger.info(f"✅ Merge complete - received {token.symbol}")
        return result

    async def ensure_conditional_tokens(
        self,
        proposal: str,
        collateral: str,
        conditional_token: str,
        required_amount: int,
        is_yes_outcome: bool,
    ) -> int:
        """
        Make sure the signer holds at least required_amount of a conditional token.

        Splits exactly the shortfall (scaled to collateral decimals, at least
        one unit) when the balance is short. A balance that is still short
        after the split is logged, not retried.

        Args:
            proposal: Proposal address
            collateral: Collateral token the conditional token is split from
            conditional_token: YES or NO token address
            required_amount: Required conditional token base units
            is_yes_outcome: Whether the token is the YES side (for logs)

        Returns:
            Conditional token balance after any split

        Raises:
            InsufficientCollateral: If the collateral cannot cover the shortfall
        """
        cond_info = await self.token_manager.load_token(conditional_token)
        coll_info = await self.token_manager.load_token(collateral)
        label = f"{'YES' if is_yes_outcome else 'NO'}-{coll_info.symbol}"

        balances = await self.token_manager.refresh_balances([cond_info.address, coll_info.address])
        current = balances[cond_info.address.lower()]
        collateral_balance = balances[coll_info.address.lower()]

        self.logger.info(
            f"🔍 {label}: balance {format_units(current, cond_info.decimals)}, "
            f"required {format_units(required_amount, cond_info.decimals)}"
        )

        if current >= required_amount:
            self.logger.info(f"✅ Sufficient {label} balance already available")
            return current

        shortfall = required_amount - current
        shortfall_collateral = scale_units(shortfall, cond_info.decimals, coll_info.decimals)
        if shortfall_collateral == 0:
            shortfall_collateral = 1

        if collateral_balance < shortfall_collateral:
            raise InsufficientCollateral(
                token=coll_info.address,
                required=shortfall_collateral,
                available=collateral_balance,
                symbol=coll_info.symbol,
            )

        await self.split_tokens(proposal, coll_info.address, shortfall_collateral)

        balances = await self.token_manager.refresh_balances([cond_info.address, coll_info.address])
        new_balance = balances[cond_info.address.lower()]
        if new_balance < required_amount:
            self.logger.warning(
                f"⚠️ {label} balance still short after split: "
                f"{format_units(new_balance, cond_info.decimals)} < "
                f"{format_units(required_amount, cond_info.decimals)}"
            )
        return new_balance

    async def probe_split(self, proposal: str, collateral: str, amount: int = 1) -> Optional[TransactionResult]:
        """Split a tiny amount to observe which conditional tokens the adapter mints."""
        try:
            return await self.split_tokens(proposal, collateral, amount)
        except Exception as e:
            self.logger.warning(f"⚠️ Probe split of {collateral} failed: {e}")
            return None

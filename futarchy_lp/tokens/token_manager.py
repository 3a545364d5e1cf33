"""
ERC-20 metadata cache, balances and allowances for the signing account.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from web3 import Web3

from ..chain.client import ChainClient, TransactionResult
from ..contracts.abis import ERC20_ABI
from ..errors import ProvisioningError
from ..pricing.units import format_units
from .models import Token

logger = logging.getLogger(__name__)


class TokenManager:
    """
    Session cache of token metadata keyed by lower-cased address.

    The cache only grows; entries are never evicted during a run.
    """

    def __init__(self, client: ChainClient, approve_gas_limit: int = 100000):
        self.client = client
        self.approve_gas_limit = approve_gas_limit
        self._tokens: Dict[str, Token] = {}
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _contract(self, address: str):
        return self.client.contract(address, ERC20_ABI)

    def get_cached(self, address: str) -> Optional[Token]:
        return self._tokens.get(address.lower())

    def symbol_of(self, address: str) -> str:
        token = self.get_cached(address)
        return token.symbol if token else address

    async def load_token(self, address: str) -> Token:
        """
        Load symbol and decimals of a token, caching the result.

        Args:
            address: Token address in any case

        Returns:
            Cached Token instance
        """
        key = address.lower()
        if key in self._tokens:
            return self._tokens[key]

        checksum = Web3.to_checksum_address(address)
        contract = self._contract(checksum)
        try:
            symbol, decimals = await asyncio.gather(
                self.client.call(contract.functions.symbol()),
                self.client.call(contract.functions.decimals()),
            )
        except Exception as e:
            raise ProvisioningError(f"Failed to load token metadata for {checksum}: {e}") from e

        token = Token(address=checksum, symbol=symbol, decimals=int(decimals))
        self._tokens[key] = token
        self.logger.debug(f"Loaded {token}")
        return token

    async def load_tokens(self, addresses: Iterable[str]) -> List[Token]:
        tokens = []
        for address in addresses:
            tokens.append(await self.load_token(address))
        return tokens

    async def get_balance(self, address: str, owner: Optional[str] = None) -> int:
        """Fresh balance of a token for owner (defaults to the signer)."""
        token = await self.load_token(address)
        holder = Web3.to_checksum_address(owner) if owner else self.client.address
        balance = int(await self.client.call(self._contract(token.address).functions.balanceOf(holder)))
        if owner is None or holder == self.client.address:
            token.balance = balance
        return balance

    async def refresh_balances(self, addresses: Iterable[str]) -> Dict[str, int]:
        """Refresh signer balances of several tokens, keyed by lower-cased address."""
        unique = list(dict.fromkeys(a.lower() for a in addresses))
        balances = await asyncio.gather(*(self.get_balance(a) for a in unique))
        return dict(zip(unique, balances))

    async def get_allowance(self, address: str, spender: str) -> int:
        token = await self.load_token(address)
        fn = self._contract(token.address).functions.allowance(
            self.client.address, Web3.to_checksum_address(spender)
        )
        return int(await self.client.call(fn))

    async def ensure_allowance(
        self, address: str, spender: str, amount: int, spender_name: str = "Contract"
    ) -> Optional[TransactionResult]:
        """
        Approve spender for at least amount, only when the current allowance is short.

        A non-zero allowance that is too small is reset to zero first, as some
        tokens refuse to change one non-zero allowance to another.

        Returns:
            TransactionResult of the approval, or None if none was needed
        """
        token = await self.load_token(address)
        current = await self.get_allowance(token.address, spender)

        if current >= amount:
            self.logger.info(
                f"✅ {spender_name} already approved to spend "
                f"{format_units(amount, token.decimals)} {token.symbol}"
            )
            return None

        self.logger.info(
            f"📝 Approving {spender_name} to spend {format_units(amount, token.decimals)} {token.symbol}"
        )
        contract = self._contract(token.address)
        checksum_spender = Web3.to_checksum_address(spender)

        if current > 0:
            await self.client.send(
                contract.functions.approve(checksum_spender, 0),
                gas_fallback=self.approve_gas_limit,
                description=f"Reset {token.symbol} allowance",
            )

        return await self.client.send(
            contract.functions.approve(checksum_spender, amount),
            gas_fallback=self.approve_gas_limit,
            description=f"Approve {token.symbol}",
        )

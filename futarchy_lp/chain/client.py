"""
Transaction submission and contract call access for one signing account.

Blocking web3 calls are executed in the default executor so the provisioning
coroutine can await them. Every transaction is awaited until its receipt is
available; nonces are read from the pending block.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type

from hexbytes import HexBytes
from web3 import Web3

from ..errors import TransactionReverted
from .gas import GasPolicy

logger = logging.getLogger(__name__)


def hex_str(value: Any) -> str:
    """Render bytes, HexBytes or str as a lowercase 0x-prefixed hex string."""
    if isinstance(value, str):
        return value.lower() if value.startswith("0x") else "0x" + value.lower()
    return "0x" + bytes(value).hex()


def topic_bytes(topic: Any) -> bytes:
    return bytes(HexBytes(topic))


def topic_to_address(topic: Any) -> str:
    """Address stored in the low 20 bytes of an indexed topic."""
    return Web3.to_checksum_address("0x" + topic_bytes(topic)[-20:].hex())


def log_data(log: Dict) -> bytes:
    return bytes(HexBytes(log.get("data") or b""))


@dataclass
class TransactionResult:
    """Hash and receipt of a mined transaction."""

    tx_hash: str
    receipt: Any

    @property
    def logs(self):
        return self.receipt.get("logs", []) if self.receipt else []

    @property
    def gas_used(self) -> Optional[int]:
        return self.receipt.get("gasUsed") if self.receipt else None


class ChainClient:
    """
    Thin async facade over a web3 connection and a signer.

    The signer only needs an ``address`` attribute and a
    ``sign_transaction(tx)`` method (for example an eth_account LocalAccount).
    """

    def __init__(
        self,
        web3: Web3,
        signer: Any,
        gas_policy: GasPolicy,
        chain_id: int,
        receipt_timeout: int = 300,
        explorer_tx_link: Optional[Callable[[str], str]] = None,
        fallback_gas_price: Optional[int] = None,
    ):
        self.web3 = web3
        self.signer = signer
        self.gas_policy = gas_policy
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout
        self.explorer_tx_link = explorer_tx_link
        self.fallback_gas_price = fallback_gas_price
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def address(self) -> str:
        return Web3.to_checksum_address(self.signer.address)

    def contract(self, address: str, abi: list):
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def _run(self, fn: Callable, *args, **kwargs) -> Any:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    async def call(self, fn, block_identifier: str = "latest") -> Any:
        """Execute a read-only contract function call."""
        return await self._run(fn.call, {"from": self.address}, block_identifier)

    async def get_code(self, address: str) -> bytes:
        return await self._run(self.web3.eth.get_code, Web3.to_checksum_address(address))

    async def fee_params(self) -> Dict[str, int]:
        """Fee fields for the next transaction, floored at the chain minimum."""
        block = await self._run(self.web3.eth.get_block, "latest")
        base_fee = block.get("baseFeePerGas")

        if base_fee is None:
            try:
                gas_price = await self._run(lambda: self.web3.eth.gas_price)
            except Exception as e:
                if self.fallback_gas_price is None:
                    raise
                self.logger.warning(f"⚠️ Gas price unavailable, using fallback {self.fallback_gas_price}: {e}")
                gas_price = self.fallback_gas_price
            return self.gas_policy.fee_params(None, gas_price=gas_price)

        try:
            suggested = await self._run(lambda: self.web3.eth.max_priority_fee)
        except Exception as e:
            self.logger.warning(f"⚠️ Priority fee suggestion unavailable, using chain minimum: {e}")
            suggested = None

        return self.gas_policy.fee_params(base_fee, suggested_priority_fee=suggested)

    async def estimate_gas(self, fn, value: int = 0) -> Optional[int]:
        """Estimate gas for a contract function, None when estimation fails."""
        try:
            return await self._run(fn.estimate_gas, {"from": self.address, "value": value})
        except Exception as e:
            self.logger.warning(f"⚠️ Gas estimation failed: {e}")
            return None

    async def send(
        self,
        fn,
        gas_fallback: int,
        gas_overhead: Optional[int] = None,
        description: str = "transaction",
        revert_error: Type[TransactionReverted] = TransactionReverted,
        min_gas_limit: Optional[int] = None,
        value: int = 0,
    ) -> TransactionResult:
        """
        Build, sign and submit a contract transaction and wait for its receipt.

        Args:
            fn: Bound contract function
            gas_fallback: Gas limit used when estimation fails
            gas_overhead: Fixed overhead added to the buffered estimate
            description: Human readable label for logs and errors
            revert_error: Exception type raised when the call reverts
            min_gas_limit: Lower bound for the gas limit
            value: Native value to send

        Returns:
            TransactionResult with the mined receipt

        Raises:
            TransactionReverted: (or revert_error) if submission fails or the
                receipt reports failure
        """
        estimate = await self.estimate_gas(fn, value=value)
        if estimate is None:
            gas_limit = gas_fallback
            self.logger.info(f"Using fallback gas limit {gas_limit} for {description}")
        else:
            gas_limit = self.gas_policy.gas_limit(estimate, gas_overhead)
        if min_gas_limit is not None:
            gas_limit = max(gas_limit, min_gas_limit)

        fees = await self.fee_params()

        try:
            nonce = await self._run(self.web3.eth.get_transaction_count, self.address, "pending")
            tx = await self._run(
                fn.build_transaction,
                {
                    "from": self.address,
                    "nonce": nonce,
                    "gas": gas_limit,
                    "chainId": self.chain_id,
                    "value": value,
                    **fees,
                },
            )
            signed = self.signer.sign_transaction(tx)
            raw_hash = await self._run(self.web3.eth.send_raw_transaction, signed.raw_transaction)
        except Exception as e:
            raise revert_error(f"{description} failed to submit: {e}", reason=str(e)) from e

        tx_hash = hex_str(raw_hash)
        self.logger.info(f"📤 {description} sent: {self._link(tx_hash)}")

        try:
            receipt = await self._run(
                self.web3.eth.wait_for_transaction_receipt, raw_hash, timeout=self.receipt_timeout
            )
        except Exception as e:
            raise revert_error(
                f"{description} was not confirmed: {e}", tx_hash=tx_hash, reason=str(e)
            ) from e

        if receipt.get("status") != 1:
            raise revert_error(
                f"{description} reverted: {tx_hash}", tx_hash=tx_hash, reason="status 0"
            )

        self.logger.info(f"✅ {description} confirmed (gas used: {receipt.get('gasUsed')})")
        return TransactionResult(tx_hash=tx_hash, receipt=receipt)

    def _link(self, tx_hash: str) -> str:
        return self.explorer_tx_link(tx_hash) if self.explorer_tx_link else tx_hash

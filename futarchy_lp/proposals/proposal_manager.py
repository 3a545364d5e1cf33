"""
Futarchy proposal access: loading, conditional token discovery and creation.

A proposal wraps four conditional outcome tokens (YES/NO of the company
token and YES/NO of the currency token) that are minted by the split
adapter. Proposals are read once per run and never mutated.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from web3 import Web3

from ..adapter.futarchy_adapter import FutarchyAdapter
from ..chain.client import ChainClient, topic_bytes, topic_to_address
from ..chain.gas import PROPOSAL_GAS_OVERHEAD
from ..config.protocols import event_topic
from ..contracts.abis import FUTARCHY_FACTORY_ABI, FUTARCHY_PROPOSAL_ABI
from ..errors import ProposalAddressUnresolved, ProvisioningError
from ..tokens.models import TokenRole
from ..tokens.token_manager import TokenManager

logger = logging.getLogger(__name__)

ERC20_TRANSFER_TOPIC = event_topic("Transfer(address,address,uint256)")
PROPOSAL_CREATED_TOPIC = event_topic("ProposalCreated(address)")

# Polygon emits native-token Transfer logs from this pseudo contract
NATIVE_TOKEN_LOG_EMITTER = "0x0000000000000000000000000000000000001010"

OUTCOME_INDEXES = {
    TokenRole.YES_COMPANY: 0,
    TokenRole.NO_COMPANY: 1,
    TokenRole.YES_CURRENCY: 2,
    TokenRole.NO_CURRENCY: 3,
}


@dataclass(frozen=True)
class Proposal:
    """Addresses of a futarchy proposal and its six pool legs."""
    address: str
    market_name: str
    company_token: str
    currency_token: str
    yes_company_token: Optional[str]
    no_company_token: Optional[str]
    yes_currency_token: Optional[str]
    no_currency_token: Optional[str]
    opening_time: int

    def token_for_role(self, role: TokenRole) -> Optional[str]:
        return {
            TokenRole.COMPANY: self.company_token,
            TokenRole.CURRENCY: self.currency_token,
            TokenRole.YES_COMPANY: self.yes_company_token,
            TokenRole.NO_COMPANY: self.no_company_token,
            TokenRole.YES_CURRENCY: self.yes_currency_token,
            TokenRole.NO_CURRENCY: self.no_currency_token,
        }[role]

    @property
    def unresolved_roles(self) -> List[TokenRole]:
        return [role for role in TokenRole if not self.token_for_role(role)]


@dataclass
class ProposalCreationResult:
    proposal_address: str
    tx_hash: str
    receipt: Any
    market_name: str
    opening_time: int


class ProposalManager:
    """
    Reads, discovers and creates futarchy proposals.

    Args:
        client: Chain client of the signing account
        token_manager: Token metadata cache
        adapter: Split adapter used by conditional token discovery
        factory_address: Futarchy factory used by create_proposal
        create_gas_limit: Lower bound and fallback gas limit for creation
        category: Default question category
        language: Default question language
        min_bond: Default minimum oracle bond in wei
        opening_time_offset: Seconds from now until the question opens
    """

    def __init__(
        self,
        client: ChainClient,
        token_manager: TokenManager,
        adapter: Optional[FutarchyAdapter] = None,
        factory_address: Optional[str] = None,
        create_gas_limit: int = 5000000,
        category: str = "crypto, kleros, governance",
        language: str = "en",
        min_bond: int = 10**18,
        opening_time_offset: int = 7 * 24 * 3600,
    ):
        self.client = client
        self.token_manager = token_manager
        self.adapter = adapter
        self.factory_address = Web3.to_checksum_address(factory_address) if factory_address else None
        self.create_gas_limit = create_gas_limit
        self.category = category
        self.language = language
        self.min_bond = min_bond
        self.opening_time_offset = opening_time_offset
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _default_opening_time(self) -> int:
        return int(time.time()) + self.opening_time_offset

    async def load_proposal(self, address: str) -> Proposal:
        """
        Read a proposal's collateral and wrapped outcome tokens.

        Raises:
            ProvisioningError: If any proposal view call fails
        """
        checksum = Web3.to_checksum_address(address)
        contract = self.client.contract(checksum, FUTARCHY_PROPOSAL_ABI)
        self.logger.info(f"📋 Loading proposal {checksum}")

        try:
            market_name, company, currency = await asyncio.gather(
                self.client.call(contract.functions.marketName()),
                self.client.call(contract.functions.collateralToken1()),
                self.client.call(contract.functions.collateralToken2()),
            )
            outcomes = {}
            for role, index in OUTCOME_INDEXES.items():
                wrapped, _data = await self.client.call(contract.functions.wrappedOutcome(index))
                outcomes[role] = Web3.to_checksum_address(wrapped)
        except Exception as e:
            raise ProvisioningError(f"Failed to load proposal {checksum}: {e}") from e

        proposal = Proposal(
            address=checksum,
            market_name=market_name,
            company_token=Web3.to_checksum_address(company),
            currency_token=Web3.to_checksum_address(currency),
            yes_company_token=outcomes[TokenRole.YES_COMPANY],
            no_company_token=outcomes[TokenRole.NO_COMPANY],
            yes_currency_token=outcomes[TokenRole.YES_CURRENCY],
            no_currency_token=outcomes[TokenRole.NO_CURRENCY],
            opening_time=self._default_opening_time(),
        )
        self.logger.info(f"✅ Loaded proposal '{market_name}'")
        return proposal

    async def discover_conditional_tokens(
        self,
        proposal_address: str,
        company_token: str,
        currency_token: str,
        market_name: str = "unknown",
        adapter: Optional[FutarchyAdapter] = None,
    ) -> Proposal:
        """
        Find a proposal's conditional tokens by splitting one base unit of each collateral.

        ERC-20 Transfer emitters in the split receipt are classified by
        symbol. Slots that cannot be classified stay None and are reported
        as warnings.

        Args:
            adapter: Split adapter for this call (defaults to the manager's)

        Raises:
            ValueError: If no split adapter is available
        """
        adapter = adapter or self.adapter
        if adapter is None:
            raise ValueError("Conditional token discovery requires a split adapter")

        checksum = Web3.to_checksum_address(proposal_address)
        self.logger.info(f"🔍 Discovering conditional tokens of {checksum} by probe split")

        yes_company, no_company = await self._discover_for_collateral(adapter, checksum, company_token)
        yes_currency, no_currency = await self._discover_for_collateral(adapter, checksum, currency_token)

        return Proposal(
            address=checksum,
            market_name=market_name,
            company_token=Web3.to_checksum_address(company_token),
            currency_token=Web3.to_checksum_address(currency_token),
            yes_company_token=yes_company,
            no_company_token=no_company,
            yes_currency_token=yes_currency,
            no_currency_token=no_currency,
            opening_time=int(time.time()),
        )

    async def _discover_for_collateral(
        self, adapter: FutarchyAdapter, proposal_address: str, collateral: str
    ) -> Tuple[Optional[str], Optional[str]]:
        result = await adapter.probe_split(proposal_address, collateral, 1)
        if result is None:
            self.logger.warning(f"⚠️ No probe split receipt for {collateral}; YES/NO tokens unknown")
            return None, None

        excluded = {
            collateral.lower(),
            adapter.adapter_address.lower(),
            NATIVE_TOKEN_LOG_EMITTER,
        }
        candidates = []
        for log in result.logs:
            topics = log.get("topics") or []
            if not topics or "0x" + topic_bytes(topics[0]).hex() != ERC20_TRANSFER_TOPIC:
                continue
            emitter = str(log.get("address", ""))
            if not emitter or emitter.lower() in excluded:
                continue
            checksum = Web3.to_checksum_address(emitter)
            if checksum not in candidates:
                candidates.append(checksum)

        yes_token = no_token = None
        for candidate in candidates:
            try:
                token = await self.token_manager.load_token(candidate)
            except ProvisioningError as e:
                self.logger.warning(f"⚠️ Skipping unreadable candidate {candidate}: {e}")
                continue
            symbol = (token.symbol or "").upper()
            if "YES" in symbol:
                yes_token = yes_token or candidate
            elif "NO" in symbol:
                no_token = no_token or candidate

        if not yes_token or not no_token:
            self.logger.warning(
                f"⚠️ Could not reliably classify YES/NO tokens for {collateral}; candidates: {candidates}"
            )
        return yes_token, no_token

    async def create_proposal(
        self,
        market_name: str,
        company_token: str,
        currency_token: str,
        category: Optional[str] = None,
        language: Optional[str] = None,
        min_bond: Optional[int] = None,
        opening_time: Optional[int] = None,
    ) -> ProposalCreationResult:
        """
        Create a proposal through the futarchy factory.

        The new address is taken from the factory's ProposalCreated event,
        falling back to a static-call prediction made before submission.

        Raises:
            ValueError: If no factory is configured
            TransactionReverted: If the creation transaction fails
            ProposalAddressUnresolved: If neither source yields an address
        """
        if not self.factory_address:
            raise ValueError("Futarchy factory address is not configured for this chain")

        opening_time = opening_time if opening_time is not None else self._default_opening_time()
        params = (
            market_name,
            Web3.to_checksum_address(company_token),
            Web3.to_checksum_address(currency_token),
            category if category is not None else self.category,
            language if language is not None else self.language,
            min_bond if min_bond is not None else self.min_bond,
            opening_time,
        )
        factory = self.client.contract(self.factory_address, FUTARCHY_FACTORY_ABI)
        fn = factory.functions.createProposal(params)

        self.logger.info(f"📝 Creating proposal '{market_name}' (opens at {opening_time})")

        predicted = None
        try:
            predicted = await self.client.call(fn)
            self.logger.info(f"🔮 Predicted proposal address: {predicted}")
        except Exception as e:
            self.logger.debug(f"Proposal address prediction failed: {e}")

        result = await self.client.send(
            fn,
            gas_fallback=self.create_gas_limit,
            gas_overhead=PROPOSAL_GAS_OVERHEAD,
            description="Create proposal",
            min_gas_limit=self.create_gas_limit,
        )

        address = self._proposal_from_logs(result.logs)
        if address is None and predicted and int(predicted, 16) != 0:
            address = Web3.to_checksum_address(predicted)
        if address is None:
            raise ProposalAddressUnresolved(
                "Proposal address not determined from receipt or prediction", tx_hash=result.tx_hash
            )

        self.logger.info(f"✅ Proposal created: {address}")
        return ProposalCreationResult(
            proposal_address=address,
            tx_hash=result.tx_hash,
            receipt=result.receipt,
            market_name=market_name,
            opening_time=opening_time,
        )

    def _proposal_from_logs(self, logs: List[Dict]) -> Optional[str]:
        factory = self.factory_address.lower()
        for log in logs:
            topics = log.get("topics") or []
            if len(topics) < 2 or str(log.get("address", "")).lower() != factory:
                continue
            if "0x" + topic_bytes(topics[0]).hex() == PROPOSAL_CREATED_TOPIC:
                return topic_to_address(topics[1])
        return None

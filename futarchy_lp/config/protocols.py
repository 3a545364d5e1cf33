"""
AMM protocol configuration for futarchy liquidity provisioning.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from web3 import Web3

from .base import BaseConfig


@dataclass
class ProtocolConfig(BaseConfig):
    """Configuration for the supported concentrated-liquidity AMMs."""

    # Pool defaults
    DEFAULT_FEE_TIER: int = BaseConfig.get_env_int("FEE_TIER", 3000)
    FEE_TIERS: Tuple[int, ...] = (100, 500, 3000, 10000)
    TICK_WIDTH_STEPS: int = BaseConfig.get_env_int("TICK_WIDTH_STEPS", 10)
    MIN_TICK: int = -887272
    MAX_TICK: int = 887272
    DEADLINE_MINUTES: int = BaseConfig.get_env_int("DEADLINE_MINUTES", 20)
    PRICE_TOLERANCE_PERCENT: float = BaseConfig.get_env_float("PRICE_TOLERANCE_PERCENT", 1.0)

    # Pool address resolution after creation
    POOL_ADDRESS_POLL_ATTEMPTS: int = BaseConfig.get_env_int("POOL_ADDRESS_POLL_ATTEMPTS", 8)
    POOL_ADDRESS_POLL_INTERVAL: float = BaseConfig.get_env_float("POOL_ADDRESS_POLL_INTERVAL", 1.5)

    # Proposal defaults
    PROPOSAL_CATEGORY: str = BaseConfig.get_env("PROPOSAL_CATEGORY", "crypto, kleros, governance")
    PROPOSAL_LANGUAGE: str = BaseConfig.get_env("PROPOSAL_LANGUAGE", "en")
    PROPOSAL_MIN_BOND: int = BaseConfig.get_env_int("PROPOSAL_MIN_BOND", 10**18)
    PROPOSAL_OPENING_TIME_OFFSET: int = BaseConfig.get_env_int(
        "PROPOSAL_OPENING_TIME_OFFSET", 7 * 24 * 3600
    )

    # Event Hashes (standard across chains)
    ERC20_TRANSFER_EVENT: str = (
        "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
    )

    @property
    def amm_config(self) -> Dict[str, Dict]:
        """AMM variants keyed by name."""
        return {
            "uniswap": {
                "label": "Uniswap V3",
                "fee_tiered": True,
            },
            "swapr": {
                "label": "Swapr/Algebra V3",
                "fee_tiered": False,
            },
        }

    @property
    def supported_amms(self) -> List[str]:
        """Get list of supported AMMs."""
        return list(self.amm_config.keys())

    @property
    def event_signatures(self) -> Dict[str, str]:
        """Canonical event signatures used when parsing receipts."""
        return {
            "erc20_transfer": "Transfer(address,address,uint256)",
            "pool_initialize": "Initialize(uint160,int24)",
            "uniswap_v3_pool_created": "PoolCreated(address,address,uint24,int24,address)",
            "algebra_pool_created": "Pool(address,address,address)",
            "proposal_created": "ProposalCreated(address)",
        }

    def get_amm_config(self, amm: str) -> Dict:
        """Get configuration for a specific AMM."""
        if amm not in self.amm_config:
            raise ValueError(f"Unsupported AMM: {amm}")
        return self.amm_config[amm]

    def get_event_hash(self, event_type: str) -> str:
        """Get event topic hash for a specific event type."""
        if event_type not in self.event_signatures:
            raise ValueError(f"Unknown event type: {event_type}")
        return event_topic(self.event_signatures[event_type])


def event_topic(signature: str) -> str:
    """Keccak topic of an event signature as a 0x-prefixed lowercase string."""
    return "0x" + bytes(Web3.keccak(text=signature)).hex()

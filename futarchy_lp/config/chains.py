"""
Chain-specific configuration for futarchy liquidity provisioning.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

from .base import BaseConfig


@dataclass
class ChainConfig(BaseConfig):
    """Chain-specific configuration for the supported networks."""

    # Default chain settings
    DEFAULT_CHAIN_ID: int = BaseConfig.get_env_int("CHAIN_ID", 100)

    # Chain-specific RPC URLs
    GNOSIS_RPC_URL: str = BaseConfig.get_env("GNOSIS_RPC_URL", "https://rpc.gnosischain.com")
    ETHEREUM_RPC_URL: str = BaseConfig.get_env("ETHEREUM_RPC_URL", "https://eth.llamarpc.com")
    POLYGON_RPC_URL: str = BaseConfig.get_env("POLYGON_RPC_URL", "https://polygon-rpc.com")

    # Chain IDs
    GNOSIS_CHAIN_ID: int = 100
    ETHEREUM_CHAIN_ID: int = 1
    POLYGON_CHAIN_ID: int = 137

    # Futarchy contracts that are not known for every chain
    ETHEREUM_FUTARCHY_FACTORY: str = BaseConfig.get_env("ETHEREUM_FUTARCHY_FACTORY", "")
    ETHEREUM_FUTARCHY_ADAPTER: str = BaseConfig.get_env("ETHEREUM_FUTARCHY_ADAPTER", "")
    POLYGON_FUTARCHY_FACTORY: str = BaseConfig.get_env("POLYGON_FUTARCHY_FACTORY", "")
    POLYGON_FUTARCHY_ADAPTER: str = BaseConfig.get_env("POLYGON_FUTARCHY_ADAPTER", "")

    # Gas settings
    FEE_MULTIPLIER: float = BaseConfig.get_env_float("FEE_MULTIPLIER", 1.0)
    GAS_LIMIT_BUFFER_PERCENT: int = BaseConfig.get_env_int("GAS_LIMIT_BUFFER_PERCENT", 30)
    FALLBACK_GAS_PRICE_GWEI: float = BaseConfig.get_env_float("GAS_PRICE_GWEI", 25.0)
    TX_RECEIPT_TIMEOUT: int = BaseConfig.get_env_int("TX_RECEIPT_TIMEOUT", 300)

    @property
    def default_gas_limits(self) -> Dict[str, int]:
        """Fallback gas limits used when estimation fails."""
        return {
            "approve": 100000,
            "split": 1500000,
            "merge": 1500000,
            "create_pool": 5000000,
            "mint_position": 1000000,
            "create_proposal": 5000000,
        }

    @property
    def supported_chains(self) -> Dict[int, Dict]:
        """Get configuration for all supported chains."""
        return {
            self.GNOSIS_CHAIN_ID: {
                "name": "gnosis",
                "chain_id": self.GNOSIS_CHAIN_ID,
                "rpc_url": self.GNOSIS_RPC_URL,
                "explorer_url": "https://gnosisscan.io",
                "native_token": "xDAI",
                "min_priority_fee_gwei": "2",
                "default_amm": "swapr",
                "contracts_by_amm": {
                    "swapr": {
                        "position_manager": "0x91fD594c46D8B01E62dBDeBed2401dde01817834",
                        "pool_factory": "0xA0864cCA6E114013AB0e27cbd5B6f4c8947da766",
                    },
                },
                "futarchy_factory": "0xa6cB18FCDC17a2B44E5cAd2d80a6D5942d30a345",
                "default_adapter": "0x7495a583ba85875d59407781b4958ED6e0E1228f",
                "gas_limits": self.default_gas_limits,
            },
            self.ETHEREUM_CHAIN_ID: {
                "name": "ethereum",
                "chain_id": self.ETHEREUM_CHAIN_ID,
                "rpc_url": self.ETHEREUM_RPC_URL,
                "explorer_url": "https://etherscan.io",
                "native_token": "ETH",
                "min_priority_fee_gwei": "0.04",
                "default_amm": "uniswap",
                "contracts_by_amm": {
                    "uniswap": {
                        "position_manager": "0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
                        "pool_factory": "0x1F98431c8aD98523631AE4a59f267346ea31F984",
                    },
                },
                "futarchy_factory": self.ETHEREUM_FUTARCHY_FACTORY,
                "default_adapter": self.ETHEREUM_FUTARCHY_ADAPTER,
                "gas_limits": self.default_gas_limits,
            },
            self.POLYGON_CHAIN_ID: {
                "name": "polygon",
                "chain_id": self.POLYGON_CHAIN_ID,
                "rpc_url": self.POLYGON_RPC_URL,
                "explorer_url": "https://polygonscan.com",
                "native_token": "POL",
                "min_priority_fee_gwei": "25",
                "default_amm": "uniswap",
                "contracts_by_amm": {
                    "uniswap": {
                        "position_manager": "0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
                        "pool_factory": "0x1F98431c8aD98523631AE4a59f267346ea31F984",
                    },
                },
                "futarchy_factory": self.POLYGON_FUTARCHY_FACTORY,
                "default_adapter": self.POLYGON_FUTARCHY_ADAPTER,
                "gas_limits": self.default_gas_limits,
            },
        }

    def get_chain_config(self, chain_id: int) -> Dict:
        """Get configuration for a specific chain."""
        if chain_id not in self.supported_chains:
            raise ValueError(f"Unsupported chain: {chain_id}")
        return self.supported_chains[chain_id]

    def get_rpc_url(self, chain_id: int) -> str:
        """Get RPC URL for a specific chain."""
        return self.get_chain_config(chain_id)["rpc_url"]

    def get_default_amm(self, chain_id: int) -> str:
        """Get the AMM used on a chain when none is selected explicitly."""
        return self.get_chain_config(chain_id)["default_amm"]

    def get_amm_contracts(self, chain_id: int, amm: str) -> Dict[str, str]:
        """Get position manager and factory addresses for an AMM on a chain."""
        contracts = self.get_chain_config(chain_id)["contracts_by_amm"]
        if amm not in contracts:
            raise ValueError(f"AMM '{amm}' is not deployed on chain {chain_id}")
        return contracts[amm]

    def get_min_priority_fee_wei(self, chain_id: int) -> int:
        """Get the minimum priority fee for a chain in wei."""
        gwei = Decimal(self.get_chain_config(chain_id)["min_priority_fee_gwei"])
        return int(gwei * Decimal(10**9))

    def get_gas_limits(self, chain_id: int) -> Dict[str, int]:
        """Get fallback gas limits for a chain."""
        return self.get_chain_config(chain_id)["gas_limits"]

    def get_explorer_tx_link(self, chain_id: int, tx_hash: str) -> str:
        """Get a block explorer link for a transaction."""
        return f"{self.get_chain_config(chain_id)['explorer_url']}/tx/{tx_hash}"

    def get_explorer_address_link(self, chain_id: int, address: str) -> str:
        """Get a block explorer link for an address."""
        return f"{self.get_chain_config(chain_id)['explorer_url']}/address/{address}"

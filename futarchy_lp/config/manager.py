"""
Configuration bound to one chain and one AMM.

Combines the base, chain and protocol settings. Switching chain or AMM means
constructing a new ConfigManager and rebuilding the provisioner from it.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from ..chain.gas import GasPolicy
from .base import BaseConfig, ConfigError
from .chains import ChainConfig
from .protocols import ProtocolConfig

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Chain/AMM binding over the environment-backed configuration classes.

    Args:
        chain_id: Chain to provision on (defaults to CHAIN_ID, then Gnosis)
        amm: AMM name (defaults to the chain's default AMM)
        environment: Override ENVIRONMENT (local, dev, staging, production)
    """

    def __init__(
        self,
        chain_id: Optional[int] = None,
        amm: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        try:
            self._base_config = BaseConfig(ENVIRONMENT=environment) if environment else BaseConfig()
            self._chain_config = ChainConfig()
            self._protocol_config = ProtocolConfig()
        except Exception as e:
            logger.error(f"Failed to initialize configuration: {e}")
            raise ConfigError(f"Configuration initialization failed: {e}")

        self.chain_id = chain_id if chain_id is not None else self._chain_config.DEFAULT_CHAIN_ID
        self.amm = amm or self._chain_config.get_default_amm(self.chain_id)
        logger.info(
            f"Configuration loaded for {self.environment}: chain {self.chain_id}, amm {self.amm}"
        )
        self.validate_configuration()

    @property
    def environment(self) -> str:
        return self._base_config.ENVIRONMENT

    @property
    def base(self) -> BaseConfig:
        return self._base_config

    @property
    def chains(self) -> ChainConfig:
        return self._chain_config

    @property
    def protocols(self) -> ProtocolConfig:
        return self._protocol_config

    @property
    def chain(self) -> Dict[str, Any]:
        """Settings of the bound chain."""
        return self.chains.get_chain_config(self.chain_id)

    @property
    def futarchy_factory(self) -> str:
        return self.chain["futarchy_factory"]

    @property
    def default_adapter(self) -> str:
        return self.chain["default_adapter"]

    @property
    def gas_limits(self) -> Dict[str, int]:
        return self.chains.get_gas_limits(self.chain_id)

    def get_amm_contracts(self) -> Dict[str, str]:
        """Position manager and pool factory of the bound AMM."""
        return self.chains.get_amm_contracts(self.chain_id, self.amm)

    def get_gas_policy(self, fixed_gas_overhead: int = 0) -> GasPolicy:
        """
        Build the gas policy for the bound chain.

        Args:
            fixed_gas_overhead: Default overhead added to buffered estimates

        Returns:
            GasPolicy instance
        """
        return GasPolicy(
            min_priority_fee_per_gas=self.chains.get_min_priority_fee_wei(self.chain_id),
            fee_multiplier=Decimal(str(self.chains.FEE_MULTIPLIER)),
            gas_limit_buffer_percent=self.chains.GAS_LIMIT_BUFFER_PERCENT,
            fixed_gas_overhead=fixed_gas_overhead,
        )

    def explorer_tx_link(self, tx_hash: str) -> str:
        return self.chains.get_explorer_tx_link(self.chain_id, tx_hash)

    def validate_configuration(self) -> bool:
        """
        Validate the chain/AMM binding.

        Returns:
            True if the configuration is valid

        Raises:
            ConfigError: If any configuration is invalid
        """
        try:
            self.chains.get_chain_config(self.chain_id)
            if self.amm not in self.protocols.supported_amms:
                raise ConfigError(f"Unsupported AMM: {self.amm}")

            contracts = self.get_amm_contracts()
            if not contracts.get("position_manager"):
                raise ConfigError(f"No position manager for {self.amm} on chain {self.chain_id}")

            if self.chains.FEE_MULTIPLIER <= 0:
                raise ConfigError(f"FEE_MULTIPLIER must be positive: {self.chains.FEE_MULTIPLIER}")

            if self.protocols.TICK_WIDTH_STEPS < 0:
                raise ConfigError(
                    f"TICK_WIDTH_STEPS must not be negative: {self.protocols.TICK_WIDTH_STEPS}"
                )

            amm_config = self.protocols.get_amm_config(self.amm)
            if amm_config["fee_tiered"] and self.protocols.DEFAULT_FEE_TIER not in self.protocols.FEE_TIERS:
                raise ConfigError(f"Unsupported fee tier: {self.protocols.DEFAULT_FEE_TIER}")

            if not self.futarchy_factory:
                logger.warning(f"No futarchy factory configured for chain {self.chain_id}")

            logger.info(f"Configuration valid for chain {self.chain_id} with {amm_config['label']}")
            return True

        except ConfigError:
            raise
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigError(f"Configuration validation failed: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert all configurations to dictionary format."""
        return {
            "environment": self.environment,
            "chain_id": self.chain_id,
            "amm": self.amm,
            "base": self.base.to_dict() if self.base else {},
            "chains": self.chains.to_dict() if self.chains else {},
            "protocols": self.protocols.to_dict() if self.protocols else {},
        }

    def __repr__(self) -> str:
        """String representation of the configuration manager."""
        return (
            f"ConfigManager(environment={self.environment}, "
            f"chain_id={self.chain_id}, amm={self.amm})"
        )

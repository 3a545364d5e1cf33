"""
Configuration management for futarchy liquidity provisioning.

Configuration is read from environment variables (and a local .env file)
and bound to a single chain and AMM by ConfigManager.

Example:
    from futarchy_lp.config import ConfigManager

    config = ConfigManager(chain_id=100, amm="swapr")

    # Access chain settings
    rpc_url = config.chains.get_rpc_url(config.chain_id)

    # Access AMM contracts
    contracts = config.get_amm_contracts()
"""

from .base import BaseConfig, ConfigError
from .chains import ChainConfig
from .manager import ConfigManager
from .protocols import ProtocolConfig, event_topic

__all__ = [
    "BaseConfig",
    "ConfigError",
    "ChainConfig",
    "ProtocolConfig",
    "ConfigManager",
    "event_topic",
]

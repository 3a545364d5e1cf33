"""
Environment-backed configuration shared by the chain and protocol settings.

Values are read once from the process environment (and a local ``.env`` file)
when the configuration modules are imported. Build a new ``ConfigManager`` to
pick up a different chain or AMM.
"""

import os
import logging
from typing import Any, Callable, Dict, Optional, List
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("local", "dev", "staging", "production")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ConfigError(Exception):
    """Invalid or missing configuration value."""
    pass


@dataclass
class BaseConfig:
    """Runtime environment and logging settings."""

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "local")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def __post_init__(self):
        self._setup_logging()
        self._validate_config()

    def _setup_logging(self):
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        if not isinstance(level, int):
            raise ConfigError(f"Invalid log level: {self.LOG_LEVEL}")
        logging.basicConfig(level=level, format=LOG_FORMAT)

    def _validate_config(self):
        if self.ENVIRONMENT not in ENVIRONMENTS:
            raise ConfigError(
                f"Invalid environment: {self.ENVIRONMENT} (expected one of {', '.join(ENVIRONMENTS)})"
            )

    @staticmethod
    def get_env(key: str, default: Optional[str] = None, required: bool = False) -> str:
        """
        Read an environment variable.

        Args:
            key: Variable name
            default: Value used when the variable is unset
            required: Raise instead of returning None when unset

        Raises:
            ConfigError: If a required variable is missing
        """
        value = os.getenv(key, default)
        if required and value is None:
            raise ConfigError(f"Required environment variable '{key}' is not set")
        return value

    @staticmethod
    def _get_typed(key: str, default: Any, required: bool, cast: Callable, type_name: str):
        raw = BaseConfig.get_env(key, None if default is None else str(default), required)
        try:
            return cast(raw)
        except (ValueError, TypeError):
            raise ConfigError(f"Environment variable '{key}' must be {type_name}, got: {raw}")

    @staticmethod
    def get_env_int(key: str, default: Optional[int] = None, required: bool = False) -> int:
        return BaseConfig._get_typed(key, default, required, int, "an integer")

    @staticmethod
    def get_env_float(key: str, default: Optional[float] = None, required: bool = False) -> float:
        return BaseConfig._get_typed(key, default, required, float, "a number")

    @staticmethod
    def get_env_bool(key: str, default: bool = False) -> bool:
        return BaseConfig.get_env(key, str(default)).strip().lower() in ("true", "1", "yes", "on")

    @staticmethod
    def get_env_list(key: str, default: Optional[List[str]] = None, separator: str = ",") -> List[str]:
        """Split a separated variable into trimmed, non-empty items."""
        raw = BaseConfig.get_env(key)
        if raw is None:
            return list(default or [])
        return [item.strip() for item in raw.split(separator) if item.strip()]

    def to_dict(self) -> Dict[str, Any]:
        """Public dataclass fields as a dictionary."""
        return {
            name: getattr(self, name)
            for name in self.__dataclass_fields__
            if not name.startswith('_')
        }

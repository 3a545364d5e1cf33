"""
Error types and error handling utilities for liquidity provisioning.

This module provides the exception hierarchy raised by the provisioning
engine and a small handler that classifies and logs failures with
structured context.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ProvisioningError(Exception):
    """Base exception for provisioning operations."""
    pass


class PriceComputationError(ProvisioningError):
    """Raised when price or ratio math receives malformed input."""
    pass


class InvalidTokenPair(ProvisioningError):
    """Raised when two token addresses cannot form an AMM pair."""
    pass


class UnresolvedTokenError(ProvisioningError):
    """Raised when a pool leg references a token that was never resolved."""
    pass


class InsufficientCollateral(ProvisioningError):
    """Raised when collateral cannot cover a required split."""

    def __init__(self, token: str, required: int, available: int, symbol: Optional[str] = None):
        label = symbol or token
        super().__init__(
            f"Insufficient {label} collateral: required {required}, available {available}"
        )
        self.token = token
        self.symbol = symbol
        self.required = required
        self.available = available


class InsufficientBaseTokenBalance(ProvisioningError):
    """Raised when a non-conditional pool leg lacks funds."""

    def __init__(self, token: str, required: int, available: int, symbol: Optional[str] = None):
        label = symbol or token
        super().__init__(
            f"Insufficient {label} balance: required {required}, available {available}"
        )
        self.token = token
        self.symbol = symbol
        self.required = required
        self.available = available


class PoolAddressUnresolved(ProvisioningError):
    """Raised when a created pool's address cannot be determined."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class ProposalAddressUnresolved(ProvisioningError):
    """Raised when a created proposal's address cannot be determined."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class TransactionReverted(ProvisioningError):
    """Raised when a submitted transaction reverts or cannot be sent."""

    def __init__(self, message: str, tx_hash: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.reason = reason


class AdapterCallReverted(TransactionReverted):
    """Raised when a split/merge adapter call reverts."""
    pass


class AMMCallReverted(TransactionReverted):
    """Raised when a pool creation, initialization or mint call reverts."""
    pass


class ErrorHandler:
    """
    Centralized error classification for provisioning operations.

    Categories drive the log level used when a pool fails; no category
    triggers an automatic retry of a transaction.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def classify_error(self, error: Exception) -> str:
        """
        Classify an error into a category.

        Args:
            error: Exception to classify

        Returns:
            Error category string
        """
        if isinstance(error, (InsufficientCollateral, InsufficientBaseTokenBalance)):
            return 'funds'
        if isinstance(error, TransactionReverted):
            return 'revert'
        if isinstance(error, (PriceComputationError, InvalidTokenPair, UnresolvedTokenError)):
            return 'validation'

        error_str = str(error).lower()

        if any(keyword in error_str for keyword in ['insufficient funds', 'insufficient balance']):
            return 'funds'

        if any(keyword in error_str for keyword in ['revert', 'execution reverted', 'out of gas']):
            return 'revert'

        if any(keyword in error_str for keyword in ['connection', 'timeout', 'network', 'dns', '429']):
            return 'network'

        if any(keyword in error_str for keyword in ['invalid', 'bad request', '400']):
            return 'validation'

        return 'unknown'

    def log_error(self, error: Exception, context: Dict[str, Any]):
        """
        Log error with appropriate level and context.

        Args:
            error: Exception to log
            context: Additional context for logging
        """
        error_category = self.classify_error(error)

        log_data = {
            'error_type': type(error).__name__,
            'error_category': error_category,
            'error_message': str(error),
            **context
        }

        if error_category in ('funds', 'validation'):
            self.logger.warning(f"Provisioning step rejected: {error}", extra=log_data)
        elif error_category == 'revert':
            self.logger.error(f"On-chain call reverted: {error}", extra=log_data)
        else:
            self.logger.error(f"Provisioning step failed: {error}", extra=log_data)

"""
Token data types shared across the provisioning engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TokenRole(Enum):
    """Logical leg of a futarchy pool."""
    YES_COMPANY = "yes_company"
    NO_COMPANY = "no_company"
    YES_CURRENCY = "yes_currency"
    NO_CURRENCY = "no_currency"
    COMPANY = "company"
    CURRENCY = "currency"

    @property
    def is_conditional(self) -> bool:
        return self not in (TokenRole.COMPANY, TokenRole.CURRENCY)

    @property
    def is_yes(self) -> bool:
        return self in (TokenRole.YES_COMPANY, TokenRole.YES_CURRENCY)

    @property
    def collateral(self) -> "TokenRole":
        """Base token a conditional token is split from (itself for base tokens)."""
        if self in (TokenRole.YES_COMPANY, TokenRole.NO_COMPANY):
            return TokenRole.COMPANY
        if self in (TokenRole.YES_CURRENCY, TokenRole.NO_CURRENCY):
            return TokenRole.CURRENCY
        return self

    @property
    def label(self) -> str:
        return self.value.replace("_", "-").upper()


@dataclass
class Token:
    """ERC-20 token metadata with the last known balance of the signer."""
    address: str
    symbol: str
    decimals: int
    balance: Optional[int] = None

    def __repr__(self) -> str:
        return f"Token({self.symbol}, {self.address}, decimals={self.decimals})"

from .models import Token, TokenRole
from .ordering import CanonicalOrdering, order_tokens
from .token_manager import TokenManager

__all__ = ['Token', 'TokenRole', 'CanonicalOrdering', 'order_tokens', 'TokenManager']

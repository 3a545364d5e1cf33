from .client import ChainClient, TransactionResult
from .gas import GasPolicy

__all__ = ['ChainClient', 'TransactionResult', 'GasPolicy']

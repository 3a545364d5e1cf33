from .futarchy_adapter import FutarchyAdapter

__all__ = ['FutarchyAdapter']

"""Spend authorization orchestration"""

from .key_locks import KeyedLockManager
from .spend_authorizer import SpendAuthorizer

__all__ = ["KeyedLockManager", "SpendAuthorizer"]

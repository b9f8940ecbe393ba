"""Persistence adapters for the policy core."""

from .base import PolicyStore
from .memory import InMemoryStore
from .sql import SqlAlchemyStore
from .factory import create_store

__all__ = [
    "PolicyStore",
    "InMemoryStore",
    "SqlAlchemyStore",
    "create_store",
]

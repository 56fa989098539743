"""Persistence layer: store protocols, records, and their implementations."""

from .memory import create_memory_stores
from .protocols import ChallengeStore, SeedKeyStores, SessionStore, UserStore
from .sql import create_sql_stores

__all__ = [
    "ChallengeStore",
    "SeedKeyStores",
    "SessionStore",
    "UserStore",
    "create_memory_stores",
    "create_sql_stores",
]

"""Datastore contract and implementations"""
from lifescore.db.store import GamificationStore, StoreTransaction
from lifescore.db.memory_store import InMemoryStore
from lifescore.db.catalog import DEFAULT_MISSIONS, DEFAULT_ACHIEVEMENTS, DEFAULT_REWARDS

__all__ = [
    "GamificationStore",
    "StoreTransaction",
    "InMemoryStore",
    "DEFAULT_MISSIONS",
    "DEFAULT_ACHIEVEMENTS",
    "DEFAULT_REWARDS",
]

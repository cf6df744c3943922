"""State store adapters.

The store is the single source of truth for the boredom state.  Every
mutation is one atomic update against it; caches only shadow it.
"""

from __future__ import annotations

from pyboredom._constants import STORE_BACKEND_MEMORY
from pyboredom.config import BoredomConfig
from pyboredom.store.base import FIELD_LAST_UPDATE_TIME, FIELD_LEVEL, FIELD_SPIKES, StateStore
from pyboredom.store.memory import MemoryStateStore
from pyboredom.store.mongo import MongoStateStore


def create_store(config: BoredomConfig) -> StateStore:
    """Build the store adapter selected by ``config.store_backend``."""
    if config.store_backend == STORE_BACKEND_MEMORY:
        return MemoryStateStore()

    return MongoStateStore(config)


__all__ = [
    "FIELD_LAST_UPDATE_TIME",
    "FIELD_LEVEL",
    "FIELD_SPIKES",
    "MemoryStateStore",
    "MongoStateStore",
    "StateStore",
    "create_store",
]

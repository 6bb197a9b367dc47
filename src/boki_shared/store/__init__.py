"""
Row store adapters for the hosted database.

Services depend on the ``RowStore`` interface only; ``build_store`` picks the
concrete backend from configuration.
"""

from __future__ import annotations

from boki_shared.config import AppConfig
from boki_shared.store.base import Filter, RecordNotFoundError, RowStore, StoreError
from boki_shared.store.memory import InMemoryRowStore
from boki_shared.store.realtime import ChangeEvent, RealtimeManager, Subscription

__all__ = [
    "ChangeEvent",
    "Filter",
    "InMemoryRowStore",
    "RealtimeManager",
    "RecordNotFoundError",
    "RowStore",
    "StoreError",
    "Subscription",
    "build_store",
]


def build_store(config: AppConfig, feed: RealtimeManager | None = None) -> RowStore:
    """Create the store selected by ``STORE_BACKEND``."""
    if config.store_backend == "memory":
        return InMemoryRowStore(feed=feed)

    from boki_shared.store.supabase_store import SupabaseRowStore

    return SupabaseRowStore.from_config(config)

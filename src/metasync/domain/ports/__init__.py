"""Domain port definitions for adapters."""

from __future__ import annotations

from .datastore import DataStore, DataStoreError

__all__ = [
    "DataStore",
    "DataStoreError",
]

"""Reference-data stores: abstract interfaces and the SQLite implementation."""

from .base import NeighbourhoodStore, SpatialStore, StoreError, TransactionStore
from .sqlite import SqliteNeighbourhoodStore, SqliteSpatialStore, SqliteTransactionStore

__all__ = [
    "NeighbourhoodStore",
    "SpatialStore",
    "SqliteNeighbourhoodStore",
    "SqliteSpatialStore",
    "SqliteTransactionStore",
    "StoreError",
    "TransactionStore",
]

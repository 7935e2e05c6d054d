"""
Persistence: filesystem adapter, path layout, run ledger and measurement store.
"""
from .file_store import LocalFileStore
from .layout import StorageLayout
from .ledger import RunLedger, RunSession
from .measurements import MeasurementStore

__all__ = [
    "LocalFileStore",
    "StorageLayout",
    "RunLedger",
    "RunSession",
    "MeasurementStore",
]

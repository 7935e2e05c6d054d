"""
ormbench

Results storage, aggregation and comparison for database-access library
benchmarks.
"""

from .manager import CleanupOptions, StorageManager, StorageStats

__version__ = "1.0.0"

__all__ = [
    "CleanupOptions",
    "StorageManager",
    "StorageStats",
    "__version__",
]

"""Storage package for factcore.

The Storage capability and its backends.
"""

from .base import Storage
from .duckdb_storage import DuckDBStorage
from .json_file import JsonFileStorage
from .memory import MemoryStorage

__all__ = ["Storage", "DuckDBStorage", "JsonFileStorage", "MemoryStorage"]

"""Factcore - a spaced-repetition engine for term/definition facts."""

from .models import Fact, FactDataset, FactStage, SchedulingState
from .fact_store import FactStore
from .scheduler import FSRSPolicy, GraduatedIntervalPolicy
from .selection import InsertionOrderSelection, SeededRandomSelection, Selection
from .session import SessionController
from .storage import DuckDBStorage, JsonFileStorage, MemoryStorage, Storage

__all__ = [
    "Fact",
    "FactDataset",
    "FactStage",
    "SchedulingState",
    "FactStore",
    "FSRSPolicy",
    "GraduatedIntervalPolicy",
    "InsertionOrderSelection",
    "SeededRandomSelection",
    "Selection",
    "SessionController",
    "DuckDBStorage",
    "JsonFileStorage",
    "MemoryStorage",
    "Storage",
]

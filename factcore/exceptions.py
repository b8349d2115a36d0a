from pathlib import Path
from typing import Optional


class FactcoreError(Exception):
    """Base exception for factcore errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class ConstructionError(FactcoreError):
    """Raised when an engine component cannot be built from its configuration."""

    pass


class StorageError(FactcoreError):
    """Base exception for persistence failures.

    The backend-specific error, if any, is kept on ``original_exception``.
    """

    pass


class StorageReadError(StorageError):
    """Raised when a backend cannot produce a dataset."""

    pass


class StorageWriteError(StorageError):
    """Raised when a backend cannot persist a dataset."""

    pass


class MarshallingError(StorageReadError):
    """Indicates stored data that does not convert back into facts."""

    pass


class FactIndexError(FactcoreError, IndexError):
    """Raised for a stale or invalid fact position."""

    def __init__(self, index: int, size: int):
        super().__init__(
            f"Fact index {index} is out of range for a store of {size} fact(s)."
        )
        self.index = index
        self.size = size


class DuplicateFactError(FactcoreError, ValueError):
    """Raised when a fact with an already-stored identity is added."""

    pass


class SequencingError(FactcoreError):
    """Raised when a controller operation is invoked in the wrong session state."""

    pass


class TransferError(FactcoreError):
    """
    An import/export problem. Raised for a whole file; returned as a value for
    a single bad entry, with ``entry_index`` set.
    """

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        entry_index: Optional[int] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(message, original_exception=original_exception)
        self.message = message
        self.path = path
        self.entry_index = entry_index

    def __str__(self) -> str:
        context_parts = []
        if self.path is not None:
            context_parts.append(f"File: {self.path.name}")
        if self.entry_index is not None:
            context_parts.append(f"Entry Index: {self.entry_index}")
        if not context_parts:
            return self.message
        return f"{', '.join(context_parts)} - {self.message}"

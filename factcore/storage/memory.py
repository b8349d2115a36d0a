"""
In-process storage, used as a test double and for throwaway sessions.
"""

import logging
from typing import Optional

from ..exceptions import StorageReadError, StorageWriteError
from ..models import FactDataset
from .base import Storage

logger = logging.getLogger(__name__)


class MemoryStorage(Storage):
    """
    Keeps the last written dataset as a JSON string, so nothing written can be
    changed afterwards through a shared reference.

    ``fail_reads``/``fail_writes`` make the next calls raise, with
    ``failure`` as the backend-specific cause.
    """

    def __init__(self, initial: Optional[FactDataset] = None):
        self._payload: Optional[str] = (
            initial.model_dump_json() if initial is not None else None
        )
        self.fail_reads = False
        self.fail_writes = False
        self.failure: Exception = OSError("simulated storage failure")
        self.read_count = 0
        self.write_count = 0
        self.exit_count = 0

    def read_db(self) -> FactDataset:
        self.read_count += 1
        if self.fail_reads:
            raise StorageReadError(
                f"Failed to read in-memory dataset: {self.failure}",
                original_exception=self.failure,
            ) from self.failure
        if self._payload is None:
            return FactDataset()
        return FactDataset.model_validate_json(self._payload)

    def write_db(self, dataset: FactDataset) -> None:
        self.write_count += 1
        if self.fail_writes:
            raise StorageWriteError(
                f"Failed to write in-memory dataset: {self.failure}",
                original_exception=self.failure,
            ) from self.failure
        self._payload = dataset.model_dump_json()
        logger.debug(f"Stored {len(dataset.facts)} fact(s) in memory.")

    def exit_application(self) -> None:
        self.exit_count += 1

    @property
    def has_data(self) -> bool:
        return self._payload is not None

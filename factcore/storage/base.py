from abc import ABC, abstractmethod

from ..models import FactDataset


class Storage(ABC):
    """
    A place to keep the fact dataset between runs.

    Backends raise ``StorageReadError``/``StorageWriteError`` with the
    backend's own exception attached as ``original_exception``.
    """

    @abstractmethod
    def read_db(self) -> FactDataset:
        """Read the whole dataset into memory."""
        pass

    @abstractmethod
    def write_db(self, dataset: FactDataset) -> None:
        """
        Persist the whole dataset. After a failure the previously stored
        dataset is still the one a later ``read_db`` returns.
        """
        pass

    def exit_application(self) -> None:
        """Release backend resources. Not every backend needs to."""
        pass

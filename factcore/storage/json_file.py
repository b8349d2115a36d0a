"""
File-based storage: the dataset as a single JSON document.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from ..exceptions import MarshallingError, StorageReadError, StorageWriteError
from ..models import FactDataset
from .base import Storage

logger = logging.getLogger(__name__)


class JsonFileStorage(Storage):
    """
    Stores the dataset as JSON at ``path``.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a failed write never leaves a truncated document behind.
    A missing file reads as an empty dataset.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).resolve()
        logger.info(f"JsonFileStorage initialized for file at: {self.path}")

    def read_db(self) -> FactDataset:
        if not self.path.exists():
            logger.info(f"No data file at {self.path}; starting empty.")
            return FactDataset()

        try:
            content = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MarshallingError(
                f"{self.path} is not valid UTF-8: {e}", original_exception=e
            ) from e
        except OSError as e:
            raise StorageReadError(
                f"Could not read {self.path}: {e}", original_exception=e
            ) from e

        try:
            dataset = FactDataset.model_validate_json(content)
        except ValidationError as e:
            raise MarshallingError(
                f"Invalid dataset in {self.path}: {e}", original_exception=e
            ) from e

        logger.info(f"Loaded {len(dataset.facts)} fact(s) from {self.path}.")
        return dataset

    def write_db(self, dataset: FactDataset) -> None:
        payload = dataset.model_dump_json(indent=2)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                tmp_file.write(payload)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                try:
                    os.unlink(tmp_name)
                except OSError as cleanup_err:
                    logger.warning(
                        f"Could not remove temporary file {tmp_name}: {cleanup_err}"
                    )
            raise StorageWriteError(
                f"Could not write {self.path}: {e}", original_exception=e
            ) from e

        logger.info(f"Saved {len(dataset.facts)} fact(s) to {self.path}.")

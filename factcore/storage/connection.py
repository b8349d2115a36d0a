import duckdb
import logging
from pathlib import Path
from typing import Optional, Union

from ..exceptions import StorageError

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class ConnectionHandler:
    """Manages the lifecycle of a DuckDB database connection."""

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Parameters:
            db_path: Path to the DuckDB file, or ":memory:" (case-insensitive)
                for an in-memory database. File paths are resolved.
            read_only: Whether to open the database read-only.
        """
        if isinstance(db_path, str) and db_path.lower() == MEMORY_PATH:
            self.db_path_resolved = Path(MEMORY_PATH)
            logger.info("Using in-memory DuckDB database.")
        else:
            self.db_path_resolved = Path(db_path).resolve()
            logger.info(
                f"ConnectionHandler initialized for DB at: {self.db_path_resolved}"
            )

        self.read_only: bool = read_only
        self._connection: Optional[duckdb.DuckDBPyConnection] = None

    @property
    def is_memory(self) -> bool:
        return str(self.db_path_resolved) == MEMORY_PATH

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the open connection, connecting first if needed. The parent
        directory of a file database is created on demand.

        Raises:
            StorageError: If DuckDB fails to connect.
        """
        if self._connection is None:
            try:
                if not self.is_memory and not self.read_only:
                    self.db_path_resolved.parent.mkdir(
                        parents=True, exist_ok=True
                    )
                self._connection = duckdb.connect(
                    database=str(self.db_path_resolved),
                    read_only=self.read_only,
                )
                logger.info("Successfully connected to the database.")
            except (duckdb.Error, OSError) as e:
                raise StorageError(
                    f"Failed to connect to database: {e}", original_exception=e
                ) from e
        return self._connection

    def close_connection(self) -> None:
        """Closes the connection if it exists, allowing a later reconnect."""
        if self._connection:
            try:
                self._connection.close()
                logger.info(
                    f"Database connection to {self.db_path_resolved} closed."
                )
            except duckdb.Error as e:
                logger.error(f"Error closing the database connection: {e}")
            finally:
                self._connection = None

import duckdb
import logging

from ..exceptions import StorageError
from .connection import ConnectionHandler

logger = logging.getLogger(__name__)

DB_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS facts (
    position INTEGER NOT NULL,
    uuid UUID NOT NULL,
    term VARCHAR NOT NULL,
    definition VARCHAR NOT NULL,
    added_at TIMESTAMP NOT NULL,
    stage VARCHAR NOT NULL DEFAULT 'New',
    next_eligible TIMESTAMP,
    streak INTEGER NOT NULL DEFAULT 0,
    penalty INTEGER NOT NULL DEFAULT 0,
    review_count INTEGER NOT NULL DEFAULT 0,
    last_reviewed TIMESTAMP,
    stability DOUBLE,
    difficulty DOUBLE,
    step INTEGER
);

CREATE TABLE IF NOT EXISTS dataset_meta (
    key VARCHAR PRIMARY KEY,
    value VARCHAR NOT NULL
);
"""


class SchemaManager:
    """Creates the tables the DuckDB backend needs."""

    def __init__(self, handler: ConnectionHandler):
        self._handler = handler
        self._initialized = False

    def ensure_schema(self) -> None:
        """
        Create the tables inside a transaction if they do not exist yet.
        Read-only file databases are left alone.
        """
        if self._initialized:
            return
        if self._handler.read_only and not self._handler.is_memory:
            logger.debug("Read-only database; skipping schema initialization.")
            self._initialized = True
            return

        conn = self._handler.get_connection()
        try:
            conn.begin()
            conn.execute(DB_SCHEMA_SQL)
            conn.commit()
            self._initialized = True
            logger.info(
                f"Database schema at {self._handler.db_path_resolved} initialized successfully (or already exists)."
            )
        except duckdb.Error as e:
            logger.error(
                f"Error initializing database schema at {self._handler.db_path_resolved}: {e}"
            )
            try:
                conn.rollback()
                logger.info(
                    "Transaction rolled back due to schema initialization error."
                )
            except duckdb.Error as rb_err:
                logger.error(f"Failed to rollback transaction: {rb_err}")
            raise StorageError(
                f"Failed to initialize schema: {e}", original_exception=e
            ) from e

    def reset(self) -> None:
        """Forget that the schema was created, e.g. after reconnecting."""
        self._initialized = False

"""
DuckDB-backed storage for the fact dataset.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import duckdb

from ..exceptions import StorageError, StorageReadError, StorageWriteError
from ..models import DATASET_FORMAT_VERSION, FactDataset
from .base import Storage
from .connection import ConnectionHandler
from .marshalling import FACT_COLUMNS, db_row_to_fact, facts_to_db_params_list
from .schema_manager import SchemaManager

logger = logging.getLogger(__name__)


def _rows_to_dicts(cursor: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Convert cursor results to list of dictionaries using column names."""
    rows = cursor.fetchall()
    if not rows:
        return []
    description = cursor.description
    if description is None:
        return []
    columns = [desc[0] for desc in description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


class DuckDBStorage(Storage):
    """
    Keeps the dataset in a DuckDB database, one row per fact.

    The connection is opened lazily and stays open until
    ``exit_application``. ``write_db`` replaces the table contents in a single
    transaction, rolled back on failure.
    """

    _INSERT_FACT_SQL = (
        f"INSERT INTO facts ({', '.join(FACT_COLUMNS)}) "
        f"VALUES ({', '.join('?' for _ in FACT_COLUMNS)})"
    )
    _SELECT_FACTS_SQL = (
        f"SELECT {', '.join(FACT_COLUMNS)} FROM facts ORDER BY position"
    )

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        self._handler = ConnectionHandler(db_path=db_path, read_only=read_only)
        self._schema_manager = SchemaManager(self._handler)

    @property
    def db_path_resolved(self) -> Path:
        return self._handler.db_path_resolved

    def _ready_connection(self) -> duckdb.DuckDBPyConnection:
        conn = self._handler.get_connection()
        self._schema_manager.ensure_schema()
        return conn

    def read_db(self) -> FactDataset:
        try:
            conn = self._ready_connection()
        except StorageError as e:
            raise StorageReadError(
                str(e), original_exception=e.original_exception
            ) from e

        try:
            rows = _rows_to_dicts(conn.execute(self._SELECT_FACTS_SQL))
            meta = conn.execute(
                "SELECT value FROM dataset_meta WHERE key = 'format_version'"
            ).fetchone()
        except duckdb.Error as e:
            raise StorageReadError(
                f"Failed to read facts: {e}", original_exception=e
            ) from e

        facts = [db_row_to_fact(row) for row in rows]
        version = int(meta[0]) if meta else DATASET_FORMAT_VERSION
        logger.info(
            f"Loaded {len(facts)} fact(s) from {self._handler.db_path_resolved}."
        )
        return FactDataset(format_version=version, facts=facts)

    def write_db(self, dataset: FactDataset) -> None:
        if self._handler.read_only:
            raise StorageWriteError(
                f"Database {self._handler.db_path_resolved} is read-only."
            )
        try:
            conn = self._ready_connection()
        except StorageError as e:
            raise StorageWriteError(
                str(e), original_exception=e.original_exception
            ) from e

        params = facts_to_db_params_list(dataset.facts)
        try:
            conn.begin()
            conn.execute("DELETE FROM facts")
            if params:
                conn.executemany(self._INSERT_FACT_SQL, params)
            conn.execute(
                "INSERT OR REPLACE INTO dataset_meta (key, value) "
                "VALUES ('format_version', ?)",
                [str(dataset.format_version)],
            )
            conn.commit()
        except duckdb.Error as e:
            logger.error(f"Failed to write facts, rolling back: {e}")
            try:
                conn.rollback()
            except duckdb.Error as rb_err:
                logger.error(f"Failed to rollback transaction: {rb_err}")
            raise StorageWriteError(
                f"Failed to write facts: {e}", original_exception=e
            ) from e

        logger.info(
            f"Saved {len(dataset.facts)} fact(s) to {self._handler.db_path_resolved}."
        )

    def exit_application(self) -> None:
        self._handler.close_connection()
        self._schema_manager.reset()

"""
DuckDBBackend - table metadata lookups against a DuckDB database.

Features:
- Column names and declared types in ordinal order (information_schema)
- Per-call cursors so several table workers can look up metadata at once
- Query counters
"""

from typing import Any, Dict, List, Optional, Tuple
import threading
import time

import duckdb

from cdc_engine.cdc.metadata_provider import MetadataProvider


class DuckDBBackend(MetadataProvider):
    """
    Metadata provider backed by a DuckDB connection.
    """

    COLUMNS_SQL = (
        "SELECT column_name, data_type FROM information_schema.columns "
        "WHERE table_schema = ? AND table_name = ? ORDER BY ordinal_position"
    )

    def __init__(
        self,
        uri: str = ":memory:",
        read_only: bool = False,
        connection: Optional["duckdb.DuckDBPyConnection"] = None,
    ):
        """
        Initialize DuckDB backend.

        Args:
            uri: Database path or ":memory:" for in-memory
            read_only: Open in read-only mode
            connection: Optional existing DuckDB connection
        """
        self.uri = uri
        if connection:
            self.con = connection
        else:
            self.con = duckdb.connect(database=uri, read_only=read_only)

        self._stats_lock = threading.Lock()
        self._query_count = 0
        self._total_time = 0.0

    def get_table_metadata(self, schema: str, table: str) -> Tuple[List[str], List[str]]:
        """
        Return (column_names, column_types) for schema.table.

        Raises LookupError when the table has no columns (does not exist).
        """
        rows = self._fetch(self.COLUMNS_SQL, [schema, table])
        if not rows:
            raise LookupError(f"table {schema}.{table} does not exist")
        return [name for name, _ in rows], [data_type for _, data_type in rows]

    def _fetch(self, sql: str, params: List[Any]) -> List[tuple]:
        start_time = time.time()
        # A cursor is a separate connection handle, safe to use from this thread
        cursor = self.con.cursor()
        try:
            rows = cursor.execute(sql, params).fetchall()
        finally:
            cursor.close()

        with self._stats_lock:
            self._query_count += 1
            self._total_time += (time.time() - start_time)
        return rows

    def get_stats(self) -> Dict[str, Any]:
        """
        Get backend performance statistics.
        """
        avg_time = self._total_time / self._query_count if self._query_count > 0 else 0

        return {
            "query_count": self._query_count,
            "total_time": self._total_time,
            "avg_query_time": avg_time,
            "uri": self.uri
        }

    def reset_stats(self):
        """Reset performance counters"""
        with self._stats_lock:
            self._query_count = 0
            self._total_time = 0.0

    def close(self):
        """Close database connection"""
        if self.con:
            self.con.close()
            self.con = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_backend_from_uri(uri: str, **kwargs) -> DuckDBBackend:
    """
    Factory function to create backend from URI.

    Supports:
        - ":memory:" - in-memory database
        - "path/to/db.duckdb" - persistent file
        - "duckdb:///path/to/db.duckdb" - URI format
    """
    if uri.startswith("duckdb://"):
        uri = uri.replace("duckdb://", "")
        if uri.startswith("/"):
            uri = uri[1:]  # Remove leading slash for relative paths

    return DuckDBBackend(uri=uri, **kwargs)

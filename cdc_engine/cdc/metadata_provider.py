"""
Metadata providers supply a table's current column names and declared types.
"""
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Tuple


class MetadataProvider(ABC):
    """Abstract base class for table metadata sources"""

    @abstractmethod
    def get_table_metadata(self, schema: str, table: str) -> Tuple[List[str], List[str]]:
        """Return (column_names, column_types) in table column order"""
        pass


class InMemoryMetadataProvider(MetadataProvider):
    """
    Metadata held in a dict, replaceable at runtime.

    Useful for replaying captured logs against known table definitions and
    for simulating DDL in tests.
    """

    def __init__(self, tables: Dict[str, List[Tuple[str, str]]] = None):
        self._lock = threading.Lock()
        self._tables: Dict[str, List[Tuple[str, str]]] = {}
        self.fetch_count = 0
        for identity, columns in (tables or {}).items():
            self._tables[identity] = list(columns)

    def set_table(self, schema: str, table: str, columns: List[Tuple[str, str]]):
        """Replace a table definition; columns are (name, declared_type) pairs."""
        with self._lock:
            self._tables[f"{schema}.{table}"] = list(columns)

    def drop_table(self, schema: str, table: str):
        with self._lock:
            self._tables.pop(f"{schema}.{table}", None)

    def get_table_metadata(self, schema: str, table: str) -> Tuple[List[str], List[str]]:
        with self._lock:
            self.fetch_count += 1
            columns = self._tables.get(f"{schema}.{table}")
        if columns is None:
            raise LookupError(f"table {schema}.{table} does not exist")
        return [name for name, _ in columns], [declared for _, declared in columns]

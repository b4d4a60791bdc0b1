"""
SchemaConverterCache - per-table column converters kept in step with table metadata.

Entries are immutable snapshots. A refresh builds a new entry and swaps it
in, so readers on other workers never see converters paired with the wrong
schema.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from cdc_engine.cdc.metadata_provider import MetadataProvider
from cdc_engine.cdc.type_converters import TypeConverter, create_converters
from cdc_engine.errors import MetadataFetchError, SchemaDriftError
from cdc_engine.types.change_event import split_table_identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableSchema:
    column_names: Tuple[str, ...]
    column_types: Tuple[str, ...]

    def index_of(self, column_name: str) -> int:
        """Position of a column in table order, -1 when absent."""
        try:
            return self.column_names.index(column_name)
        except ValueError:
            return -1


@dataclass(frozen=True)
class ConverterCacheEntry:
    schema: TableSchema
    converters: Tuple[TypeConverter, ...]


class SchemaConverterCache:
    """
    Cache of column converters keyed by table identity ("schema.table").

    Args:
        metadata_provider: Source of column names and declared types, called
            on a miss and whenever an event's columns drift from the entry.
    """

    def __init__(self, metadata_provider: MetadataProvider):
        self.metadata_provider = metadata_provider
        self._entries: Dict[str, ConverterCacheEntry] = {}
        self._lock = threading.Lock()
        self.refresh_count = 0

    def resolve(self, table_identity: str, incoming_column_names: Sequence[str]) -> Tuple[List[TypeConverter], TableSchema]:
        """
        Return (converters, schema) for a table, refreshing on drift.

        Raises MetadataFetchError or UnsupportedTypeError when a needed
        refresh fails.
        """
        try:
            entry = self._checked_entry(table_identity, incoming_column_names)
        except SchemaDriftError as e:
            logger.debug("Schema drift on %s: %s", table_identity, e)
            entry = self.refresh(table_identity)
        return list(entry.converters), entry.schema

    def lookup(self, table_identity: str, incoming_column_names: Sequence[str]) -> Optional[ConverterCacheEntry]:
        """Return the cached entry if it matches the incoming columns, else None. Never refreshes."""
        try:
            return self._checked_entry(table_identity, incoming_column_names)
        except SchemaDriftError:
            return None

    def _checked_entry(self, table_identity: str, incoming_column_names: Sequence[str]) -> ConverterCacheEntry:
        entry = self._entries.get(table_identity)
        if entry is None:
            raise SchemaDriftError(f"no cached converters for {table_identity}", table_identity)
        if len(incoming_column_names) != len(entry.converters):
            raise SchemaDriftError(
                f"{len(incoming_column_names)} incoming columns, {len(entry.converters)} cached",
                table_identity,
            )
        unknown = set(incoming_column_names).difference(entry.schema.column_names)
        if unknown:
            raise SchemaDriftError(f"unknown columns {sorted(unknown)}", table_identity)
        return entry

    def refresh(self, table_identity: str) -> ConverterCacheEntry:
        """Fetch metadata, rebuild converters and install a new entry."""
        schema_name, table_name = split_table_identity(table_identity)
        try:
            column_names, column_types = self.metadata_provider.get_table_metadata(schema_name, table_name)
        except Exception as e:
            raise MetadataFetchError(table_identity, e) from e

        schema = TableSchema(tuple(column_names), tuple(column_types))
        entry = ConverterCacheEntry(schema, tuple(create_converters(list(column_types), table_identity)))

        with self._lock:
            self._entries[table_identity] = entry
            self.refresh_count += 1
        logger.info("Refreshed converters for %s: %s", table_identity, list(column_names))
        return entry

    def invalidate(self, table_identity: str):
        with self._lock:
            self._entries.pop(table_identity, None)

    def get_entry(self, table_identity: str) -> Optional[ConverterCacheEntry]:
        return self._entries.get(table_identity)

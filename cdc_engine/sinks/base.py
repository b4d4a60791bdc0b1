"""
Row sinks - downstream consumers of materialized rows.
"""
import threading
from abc import ABC, abstractmethod
from typing import List

from cdc_engine.types.change_event import ChangeEvent
from cdc_engine.types.output_row import OutputRow


class RowSink(ABC):
    """Receives output rows in per-table drain order"""

    @abstractmethod
    def accept(self, row: OutputRow):
        pass

    def on_schema_change(self, event: ChangeEvent):
        """Called once a table's DDL has been applied, before later rows arrive"""
        pass


class MemoryRowSink(RowSink):
    """Collects rows and schema changes in arrival order."""

    def __init__(self):
        self.rows: List[OutputRow] = []
        self.schema_changes: List[ChangeEvent] = []
        # (kind, payload) in arrival order, kind is "row" or "ddl"
        self.events: List[tuple] = []
        self._lock = threading.Lock()

    def accept(self, row: OutputRow):
        with self._lock:
            self.rows.append(row)
            self.events.append(("row", row))

    def on_schema_change(self, event: ChangeEvent):
        with self._lock:
            self.schema_changes.append(event)
            self.events.append(("ddl", event))

    def rows_for(self, table_identity: str) -> List[OutputRow]:
        return [row for row in self.rows if row.table_identity == table_identity]

    def clear(self):
        with self._lock:
            self.rows.clear()
            self.schema_changes.clear()
            self.events.clear()

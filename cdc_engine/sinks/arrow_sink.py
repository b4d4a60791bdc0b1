"""
ArrowBatchSink - buffers output rows and hands them out as PyArrow Tables.
"""
import threading
from typing import Dict, List, Tuple

import pyarrow as pa

from cdc_engine.sinks.base import RowSink
from cdc_engine.types.change_event import ChangeEvent
from cdc_engine.types.output_row import OutputRow
from cdc_engine.util.arrow_utils import concat_tables, rows_to_table

ROW_KIND_COLUMN = "row_kind"


class ArrowBatchSink(RowSink):
    """
    Rows are grouped per table into batches of identical header layout.

    A row whose layout differs from the table's open batch (an insert after
    a delete, or any row after a DDL) starts a new batch, so flushing yields
    tables in the order the rows were accepted.
    """

    def __init__(self, include_row_kind: bool = True):
        self.include_row_kind = include_row_kind
        self._batches: Dict[str, List[Tuple[Tuple[str, ...], List[list]]]] = {}
        self._lock = threading.Lock()
        self.schema_changes: List[ChangeEvent] = []

    def accept(self, row: OutputRow):
        headers = tuple(row.headers)
        values = list(row.values)
        if self.include_row_kind:
            headers = headers + (ROW_KIND_COLUMN,)
            values.append(row.row_kind)

        with self._lock:
            batches = self._batches.setdefault(row.table_identity, [])
            if not batches or batches[-1][0] != headers:
                batches.append((headers, []))
            batches[-1][1].append(values)

    def on_schema_change(self, event: ChangeEvent):
        with self._lock:
            self.schema_changes.append(event)
            batches = self._batches.get(event.table_identity)
            if batches and batches[-1][1]:
                # later rows belong to the new table definition
                batches.append((batches[-1][0], []))

    def pending_rows(self, table_identity: str = None) -> int:
        with self._lock:
            if table_identity is not None:
                return sum(len(rows) for _, rows in self._batches.get(table_identity, []))
            return sum(len(rows) for batches in self._batches.values() for _, rows in batches)

    def flush(self) -> Dict[str, List[pa.Table]]:
        """Return the buffered batches per table identity and clear the buffer."""
        with self._lock:
            batches, self._batches = self._batches, {}

        return {
            identity: [rows_to_table(headers, rows) for headers, rows in table_batches if rows]
            for identity, table_batches in batches.items()
        }

    def flush_table(self, table_identity: str) -> pa.Table:
        """Flush one table's rows as a single table, columns missing from a batch are null."""
        with self._lock:
            table_batches = self._batches.pop(table_identity, [])
        return concat_tables([rows_to_table(headers, rows) for headers, rows in table_batches if rows])

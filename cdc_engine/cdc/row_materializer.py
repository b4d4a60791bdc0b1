"""
RowMaterializer - turns DML change events into typed output rows.
"""
from typing import Any, Dict, List, Sequence, Tuple

from cdc_engine.cdc.converter_cache import TableSchema
from cdc_engine.cdc.type_converters import TypeConverter
from cdc_engine.errors import FieldInconsistencyError
from cdc_engine.types.change_event import ChangeEvent, Column, Operation
from cdc_engine.types.output_row import OutputRow, RowKind

SCN = "scn"
SCHEMA = "schema"
TABLE = "table"
TS = "ts"
OP_TIME = "opTime"
TYPE = "type"
BEFORE = "before"
AFTER = "after"
BEFORE_ = "before_"
AFTER_ = "after_"


class RowMaterializer:
    """
    Build output rows from a change event and its table's converters.

    Args:
        paved: Flatten columns into before_<col>/after_<col> fields in table
            order. When False each side is one ordered dict field.
        split_update: Emit UPDATE events as an UPDATE_BEFORE row followed by
            an UPDATE_AFTER row.
    """

    def __init__(self, paved: bool = True, split_update: bool = False):
        self.paved = paved
        self.split_update = split_update

    def materialize(self, event: ChangeEvent, converters: Sequence[TypeConverter], schema: TableSchema) -> List[OutputRow]:
        if event.operation not in Operation.DML:
            raise ValueError(f"Cannot materialize {event.operation} event for {event.table_identity}")

        row = OutputRow()
        row.add_field(SCN, event.sequence_position)
        row.add_field(SCHEMA, event.schema)
        row.add_field(TABLE, event.table)
        row.add_field(TS, event.transaction_ts)
        row.add_field(OP_TIME, event.event_timestamp)

        if self.paved:
            before_headers, before_values = self._pave(event, event.before_columns, converters, schema, BEFORE_)
            after_headers, after_values = self._pave(event, event.after_columns, converters, schema, AFTER_)
        else:
            before_headers, before_values = [BEFORE], [self._nest(event.before_columns)]
            after_headers, after_values = [AFTER], [self._nest(event.after_columns)]

        if self.split_update and event.operation == Operation.UPDATE:
            before_row = row.copy()
            before_row.row_kind = RowKind.UPDATE_BEFORE
            before_row.add_field(TYPE, RowKind.UPDATE_BEFORE)
            before_row.add_fields(before_headers, before_values)

            row.row_kind = RowKind.UPDATE_AFTER
            row.add_field(TYPE, RowKind.UPDATE_AFTER)
            row.add_fields(after_headers, after_values)
            return [before_row, row]

        row.row_kind = RowKind.from_operation(event.operation)
        row.add_field(TYPE, event.operation)
        row.add_fields(before_headers, before_values)
        row.add_fields(after_headers, after_values)
        return [row]

    def _pave(self, event: ChangeEvent, columns: List[Column], converters: Sequence[TypeConverter],
              schema: TableSchema, prefix: str) -> Tuple[List[str], List[Any]]:
        # Log column order need not match the metadata order
        positioned = []
        for column in columns:
            index = schema.index_of(column.name)
            if index == -1:
                raise FieldInconsistencyError(
                    event.table_identity,
                    [c.name for c in columns],
                    list(schema.column_names),
                )
            positioned.append((index, column))
        positioned.sort(key=lambda pair: pair[0])

        headers = [prefix + column.name for _, column in positioned]
        values = [converters[index](column.raw_value) for index, column in positioned]
        return headers, values

    def _nest(self, columns: List[Column]) -> Dict[str, Any]:
        return {column.name: column.raw_value for column in columns}

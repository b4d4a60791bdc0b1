"""
Tests for row sinks.
"""
from decimal import Decimal

import pyarrow as pa
import pytest

from cdc_engine.cdc.converter_cache import TableSchema
from cdc_engine.cdc.row_materializer import RowMaterializer
from cdc_engine.cdc.type_converters import create_converters
from cdc_engine.sinks.arrow_sink import ROW_KIND_COLUMN, ArrowBatchSink
from cdc_engine.sinks.base import MemoryRowSink


@pytest.fixture
def materialize():
    schema = TableSchema(("ID", "NAME"), ("NUMBER", "VARCHAR2(10)"))
    converters = create_converters(list(schema.column_types))

    def _materialize(event, paved=True):
        return RowMaterializer(paved=paved).materialize(event, converters, schema)
    return _materialize


def test_memory_sink_keeps_arrival_order(make_event, materialize):
    sink = MemoryRowSink()
    sink.accept(materialize(make_event("INSERT", after={"ID": "1"}))[0])
    sink.on_schema_change(make_event("DDL"))
    sink.accept(materialize(make_event("INSERT", table="U", after={"ID": "2"}))[0])

    assert [kind for kind, _ in sink.events] == ["row", "ddl", "row"]
    assert len(sink.rows_for("S.T")) == 1
    assert len(sink.rows_for("S.U")) == 1

    sink.clear()
    assert sink.rows == [] and sink.events == []


def test_arrow_sink_groups_by_table_and_layout(make_event, materialize):
    sink = ArrowBatchSink()
    for i in range(3):
        sink.accept(materialize(make_event("INSERT", after={"ID": str(i), "NAME": "n"}, position=i))[0])
    sink.accept(materialize(make_event("DELETE", before={"ID": "0", "NAME": "n"}, position=3))[0])
    sink.accept(materialize(make_event("INSERT", table="U", after={"ID": "9", "NAME": "u"}))[0])

    assert sink.pending_rows() == 5
    assert sink.pending_rows("S.T") == 4

    tables = sink.flush()

    inserts, deletes = tables["S.T"]
    assert inserts.num_rows == 3
    assert "after_ID" in inserts.column_names
    assert inserts.column("after_ID").to_pylist() == [Decimal(0), Decimal(1), Decimal(2)]
    assert inserts.column(ROW_KIND_COLUMN).to_pylist() == ["INSERT"] * 3
    assert deletes.column("before_NAME").to_pylist() == ["n"]
    assert tables["S.U"][0].num_rows == 1
    assert sink.pending_rows() == 0


def test_arrow_sink_starts_new_batch_after_ddl(make_event, materialize):
    sink = ArrowBatchSink(include_row_kind=False)
    sink.accept(materialize(make_event("INSERT", after={"ID": "1", "NAME": "a"}))[0])
    sink.on_schema_change(make_event("DDL"))
    sink.accept(materialize(make_event("INSERT", after={"ID": "2", "NAME": "b"}))[0])

    batches = sink.flush()["S.T"]

    assert [b.num_rows for b in batches] == [1, 1]
    assert ROW_KIND_COLUMN not in batches[0].column_names
    assert len(sink.schema_changes) == 1


def test_arrow_sink_nested_rows(make_event, materialize):
    sink = ArrowBatchSink()
    event = make_event("UPDATE", before={"ID": "1", "NAME": "a"}, after={"ID": "1", "NAME": "b"})
    sink.accept(materialize(event, paved=False)[0])

    table = sink.flush()["S.T"][0]

    assert table.column("before").to_pylist() == [{"ID": "1", "NAME": "a"}]
    assert table.column("after").to_pylist() == [{"ID": "1", "NAME": "b"}]


def test_flush_table_fills_missing_columns(make_event, materialize):
    sink = ArrowBatchSink()
    sink.accept(materialize(make_event("INSERT", after={"ID": "1", "NAME": "a"}))[0])
    sink.accept(materialize(make_event("DELETE", before={"ID": "1", "NAME": "a"}))[0])

    table = sink.flush_table("S.T")

    assert isinstance(table, pa.Table)
    assert table.num_rows == 2
    assert table.column("after_NAME").to_pylist() == ["a", None]
    assert table.column("before_NAME").to_pylist() == [None, "a"]
    assert sink.pending_rows("S.T") == 0

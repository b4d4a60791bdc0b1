"""
Utilities for Arrow table handling.
"""
from typing import Any, List, Sequence

import pyarrow as pa


def rows_to_table(headers: Sequence[str], rows: List[Sequence[Any]]) -> pa.Table:
    """
    Build a PyArrow Table from positional rows sharing one header layout.

    Column types are inferred from the values (Decimal -> decimal128,
    datetime -> timestamp, dict -> struct, bytes -> binary).
    """
    if not rows:
        return pa.Table.from_pydict({header: [] for header in headers})

    columns = {header: [row[i] for row in rows] for i, header in enumerate(headers)}
    return pa.Table.from_pydict(columns)


def concat_tables(tables: List[pa.Table]) -> pa.Table:
    """
    Concatenate multiple Arrow tables, filling columns missing from some with nulls.
    """
    if not tables:
        return pa.Table.from_pydict({})

    return pa.concat_tables(tables, promote_options="default")

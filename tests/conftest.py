"""
Shared fixtures for the CDC engine tests.
"""
from datetime import datetime

import pytest

from cdc_engine.cdc.metadata_provider import InMemoryMetadataProvider
from cdc_engine.sinks.base import MemoryRowSink
from cdc_engine.types.change_event import ChangeEvent, Column


def _columns(values):
    if not values:
        return []
    return [Column(name, value) for name, value in values.items()]


@pytest.fixture
def make_event():
    """Factory: make_event("INSERT", after={"ID": "1"}, table="T", position=10)"""
    def factory(operation, before=None, after=None, schema="S", table="T", position=1, statement=None):
        return ChangeEvent(
            schema=schema,
            table=table,
            operation=operation,
            sequence_position=position,
            event_timestamp=datetime(2021, 5, 17, 15, 8, 27),
            transaction_ts=position * 1000,
            before_columns=_columns(before),
            after_columns=_columns(after),
            statement=statement,
        )
    return factory


@pytest.fixture
def provider():
    """Metadata for S.T with two columns"""
    return InMemoryMetadataProvider({
        "S.T": [("ID", "NUMBER(10)"), ("NAME", "VARCHAR2(20)")],
    })


@pytest.fixture
def sink():
    return MemoryRowSink()

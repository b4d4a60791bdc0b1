"""
Change events as produced by the log-mining layer.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union


class Operation:
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    DDL = "DDL"

    DML = (INSERT, UPDATE, DELETE)


@dataclass(frozen=True)
class Column:
    """A single captured column; the value is always the textual literal."""
    name: str
    raw_value: Optional[str] = None


@dataclass
class ChangeEvent:
    schema: str
    table: str
    operation: str
    sequence_position: Union[int, str] = 0  # SCN
    event_timestamp: Optional[datetime] = None
    transaction_ts: Optional[Union[int, str]] = None
    before_columns: List[Column] = field(default_factory=list)
    after_columns: List[Column] = field(default_factory=list)
    statement: Optional[str] = None  # DDL text, DDL events only

    def __post_init__(self):
        self.operation = self.operation.upper()

    @property
    def table_identity(self) -> str:
        return table_identity(self.schema, self.table)

    @property
    def is_ddl(self) -> bool:
        return self.operation == Operation.DDL

    def column_names(self) -> List[str]:
        """Names present in the event, after-side first, without duplicates."""
        names = [c.name for c in self.after_columns]
        seen = set(names)
        for column in self.before_columns:
            if column.name not in seen:
                seen.add(column.name)
                names.append(column.name)
        return names


def table_identity(schema: str, table: str) -> str:
    return f"{schema}.{table}"


def split_table_identity(identity: str):
    """Inverse of table_identity; the table part may itself contain dots."""
    schema, _, table = identity.partition(".")
    return schema, table

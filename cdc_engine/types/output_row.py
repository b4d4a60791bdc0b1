"""
OutputRow - the materialized, typed row handed to sinks.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class RowKind:
    INSERT = "INSERT"
    UPDATE_BEFORE = "UPDATE_BEFORE"
    UPDATE_AFTER = "UPDATE_AFTER"
    DELETE = "DELETE"

    @staticmethod
    def from_operation(operation: str) -> str:
        operation = operation.upper()
        if operation == "INSERT":
            return RowKind.INSERT
        if operation == "UPDATE":
            return RowKind.UPDATE_AFTER
        if operation == "DELETE":
            return RowKind.DELETE
        raise ValueError(f"No row kind for operation {operation}")


@dataclass
class OutputRow:
    headers: List[str] = field(default_factory=list)
    values: List[Any] = field(default_factory=list)
    row_kind: Optional[str] = None

    def add_field(self, header: str, value: Any):
        self.headers.append(header)
        self.values.append(value)

    def add_fields(self, headers: List[str], values: List[Any]):
        self.headers.extend(headers)
        self.values.extend(values)

    def copy(self) -> "OutputRow":
        return OutputRow(list(self.headers), list(self.values), self.row_kind)

    def get(self, header: str, default: Any = None) -> Any:
        try:
            return self.values[self.headers.index(header)]
        except ValueError:
            return default

    @property
    def operation_tag(self) -> Optional[str]:
        return self.get("type")

    @property
    def table_identity(self) -> str:
        return f"{self.get('schema')}.{self.get('table')}"

    def to_dict(self) -> Dict[str, Any]:
        return dict(zip(self.headers, self.values))

    def __len__(self):
        return len(self.headers)

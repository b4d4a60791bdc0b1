"""
Error taxonomy for the CDC engine.

Only SchemaDriftError is recoverable (it is raised and handled inside the
converter cache). Everything else stops processing for the affected table.
"""
import json
from typing import List, Optional


class CDCError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, table_identity: Optional[str] = None):
        super().__init__(message)
        self.table_identity = table_identity


class SchemaDriftError(CDCError):
    """Cached converters no longer match the columns of an incoming event."""
    pass


class MetadataFetchError(CDCError):
    """The metadata provider failed to return a table's columns."""

    def __init__(self, table_identity: str, cause: Exception):
        super().__init__(f"get table {table_identity} metadata failed: {cause}", table_identity)
        self.cause = cause


class FieldInconsistencyError(CDCError):
    """An event column cannot be found in the table's metadata."""

    def __init__(self, table_identity: str, event_columns: List[str], metadata_columns: List[str]):
        message = (
            "The fields in the log are inconsistent with those in the current meta information, "
            f"table {table_identity}, the fields in the log are {json.dumps(event_columns)}, "
            f"the fields in the metadata are {json.dumps(metadata_columns)}"
        )
        super().__init__(message, table_identity)
        self.event_columns = list(event_columns)
        self.metadata_columns = list(metadata_columns)


class UnsupportedTypeError(CDCError):
    """A declared column type has no converter."""

    def __init__(self, type_name: str, table_identity: Optional[str] = None):
        super().__init__(f"Unsupported type: {type_name}", table_identity)
        self.type_name = type_name


class ValueConversionError(CDCError):
    """A raw column literal could not be converted to its typed value."""

    def __init__(self, value: str, type_name: str, reason: str = ""):
        message = f"{type_name} converter: parse value [{value}] failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.value = value
        self.type_name = type_name

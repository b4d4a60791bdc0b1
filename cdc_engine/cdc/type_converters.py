"""
Column type mapping for log-mined change events.

Declared database types are mapped to a type family once, when a table's
converters are (re)built; each family has a pure conversion function from
the textual log literal to a typed Python value.
"""
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

from cdc_engine.errors import UnsupportedTypeError, ValueConversionError


TypeConverter = Callable[[Optional[str]], Any]

NUMERIC = "numeric"
TEXT = "text"
BINARY = "binary"
TEMPORAL = "temporal"
CHARACTER_LOB = "character_lob"

# Declared type (precision suffix stripped, upper case) -> type family
TYPE_FAMILIES: Dict[str, str] = {
    'NUMBER': NUMERIC,
    'SMALLINT': NUMERIC,
    'MEDIUMINT': NUMERIC,
    'INT': NUMERIC,
    'INTEGER': NUMERIC,
    'INT24': NUMERIC,
    'FLOAT': NUMERIC,
    'DOUBLE': NUMERIC,
    'REAL': NUMERIC,
    'BIGINT': NUMERIC,
    'DECIMAL': NUMERIC,
    'NUMERIC': NUMERIC,
    'BINARY_FLOAT': NUMERIC,
    'BINARY_DOUBLE': NUMERIC,

    'CHAR': TEXT,
    'NCHAR': TEXT,
    'NVARCHAR2': TEXT,
    'ROWID': TEXT,
    'VARCHAR2': TEXT,
    'VARCHAR': TEXT,
    'LONG': TEXT,  # Oracle LONG holds character data

    'RAW': BINARY,
    'BLOB': BINARY,
    'LONG RAW': BINARY,

    'DATE': TEMPORAL,
    'TIMESTAMP': TEMPORAL,

    'CLOB': CHARACTER_LOB,
    'NCLOB': CHARACTER_LOB,
}

HEXTORAW_PREFIX = "HEXTORAW('"
LITERAL_SUFFIX = "')"

# TO_DATE('2021-05-17 15:08:27', 'YYYY-MM-DD HH24:MI:SS'), TO_TIMESTAMP('...')
_TEMPORAL_WRAPPER = re.compile(r"^\s*TO_(?:DATE|TIMESTAMP)\s*\(\s*'([^']*)'", re.IGNORECASE)
_HEX_PAYLOAD = re.compile(r"[0-9A-Fa-f]*")
_TEMPORAL_LITERAL = re.compile(
    r"^(\d{4})-(\d{1,2})-(\d{1,2})"
    r"(?:[ T](\d{1,2}):(\d{1,2})(?::(\d{1,2})(?:\.(\d{1,9}))?)?)?$"
)


def base_type_name(declared_type: str) -> str:
    """Strip the precision suffix and normalise case: 'number(10,2)' -> 'NUMBER'."""
    index = declared_type.find("(")
    if index > 0:
        declared_type = declared_type[:index]
    return declared_type.strip().upper()


def type_family(declared_type: str) -> str:
    """Resolve the family of a declared type or raise UnsupportedTypeError."""
    if "TIME ZONE" in declared_type.upper():
        # '2021-05-17 15:08:27.000000 +08:00' cannot become a naive timestamp
        raise UnsupportedTypeError(declared_type)
    family = TYPE_FAMILIES.get(base_type_name(declared_type))
    if family is None:
        raise UnsupportedTypeError(declared_type)
    return family


def to_decimal(value: str) -> Decimal:
    # Decimal() also takes digit separators, NaN and Infinity
    if "_" in value:
        raise ValueConversionError(value, "NUMERIC", "not a number")
    try:
        number = Decimal(value.strip())
    except InvalidOperation as e:
        raise ValueConversionError(value, "NUMERIC", "not a number") from e
    if not number.is_finite():
        raise ValueConversionError(value, "NUMERIC", "not a finite number")
    return number


def to_text(value: str) -> str:
    return value


def decode_raw(value: str) -> str:
    if value.startswith(HEXTORAW_PREFIX) and value.endswith(LITERAL_SUFFIX):
        payload = value[len(HEXTORAW_PREFIX):-len(LITERAL_SUFFIX)]
        if not _HEX_PAYLOAD.fullmatch(payload):
            raise ValueConversionError(value, "RAW", "not a hex string")
        try:
            return bytes.fromhex(payload).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise ValueConversionError(value, "RAW", str(e)) from e
    return value


def parse_timestamp(value: str) -> datetime:
    """
    Parse a log-mined date literal.

    Accepts 'YYYY-MM-DD', 'YYYY-MM-DD HH:MI[:SS[.fffffffff]]' (space or 'T'
    separator), optionally wrapped in TO_DATE(...) / TO_TIMESTAMP(...).
    Fractions beyond microseconds are truncated.
    """
    literal = value
    wrapped = _TEMPORAL_WRAPPER.match(value)
    if wrapped:
        literal = wrapped.group(1)

    match = _TEMPORAL_LITERAL.match(literal.strip())
    if not match:
        raise ValueConversionError(value, "TIMESTAMP", "unrecognised date format")

    year, month, day, hour, minute, second, fraction = match.groups()
    microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0
    try:
        return datetime(
            int(year), int(month), int(day),
            int(hour or 0), int(minute or 0), int(second or 0), microsecond
        )
    except ValueError as e:
        raise ValueConversionError(value, "TIMESTAMP", str(e)) from e


def to_lob_bytes(value: str) -> bytes:
    return value.encode("utf-8")


FAMILY_CONVERTERS: Dict[str, Callable[[str], Any]] = {
    NUMERIC: to_decimal,
    TEXT: to_text,
    BINARY: decode_raw,
    TEMPORAL: parse_timestamp,
    CHARACTER_LOB: to_lob_bytes,
}


def nullable(converter: Callable[[str], Any]) -> TypeConverter:
    """Wrap a converter so that None passes through without being parsed."""
    def convert(value: Optional[str]) -> Any:
        if value is None:
            return None
        return converter(value)
    convert.__wrapped__ = converter
    return convert


def create_converter(declared_type: str) -> TypeConverter:
    return nullable(FAMILY_CONVERTERS[type_family(declared_type)])


def create_converters(column_types: List[str], table_identity: Optional[str] = None) -> List[TypeConverter]:
    converters = []
    for declared_type in column_types:
        try:
            converters.append(create_converter(declared_type))
        except UnsupportedTypeError as e:
            e.table_identity = table_identity
            raise
    return converters

"""
Tests for declared type -> converter mapping.
"""
from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock

import pytest

from cdc_engine.cdc.type_converters import (
    BINARY, CHARACTER_LOB, NUMERIC, TEMPORAL, TEXT,
    base_type_name, create_converter, create_converters, nullable, parse_timestamp, type_family,
)
from cdc_engine.errors import UnsupportedTypeError, ValueConversionError


@pytest.mark.parametrize("declared, family", [
    ("NUMBER(10,2)", NUMERIC),
    ("number", NUMERIC),
    ("BINARY_DOUBLE", NUMERIC),
    ("bigint", NUMERIC),
    ("VARCHAR2(20)", TEXT),
    ("nvarchar2(100)", TEXT),
    ("ROWID", TEXT),
    ("LONG", TEXT),
    ("RAW(16)", BINARY),
    ("LONG RAW", BINARY),
    ("BLOB", BINARY),
    ("DATE", TEMPORAL),
    ("TIMESTAMP(6)", TEMPORAL),
    ("CLOB", CHARACTER_LOB),
    ("NCLOB", CHARACTER_LOB),
])
def test_type_family(declared, family):
    assert type_family(declared) == family


def test_base_type_name_strips_precision():
    assert base_type_name("number(10,2)") == "NUMBER"
    assert base_type_name("TIMESTAMP(6)") == "TIMESTAMP"
    assert base_type_name("LONG RAW") == "LONG RAW"


@pytest.mark.parametrize("declared", [
    "INTERVAL YEAR",
    "INTERVAL YEAR(2) TO MONTH",
    "INTERVAL DAY(2) TO SECOND(6)",
    "BFILE",
    "XMLTYPE",
    "TIMESTAMP(6) WITH TIME ZONE",
    "TIMESTAMP(6) WITH LOCAL TIME ZONE",
])
def test_unsupported_types_fail_when_converter_is_built(declared):
    with pytest.raises(UnsupportedTypeError) as exc_info:
        create_converter(declared)
    assert exc_info.value.type_name == declared


def test_unsupported_type_reports_table():
    with pytest.raises(UnsupportedTypeError) as exc_info:
        create_converters(["NUMBER", "INTERVAL YEAR(2) TO MONTH"], "S.T")
    assert exc_info.value.table_identity == "S.T"


def test_hextoraw_is_decoded_as_utf8():
    convert = create_converter("RAW(16)")
    assert convert("HEXTORAW('68656c6c6f')") == "hello"


def test_raw_without_wrapper_passes_through():
    convert = create_converter("BLOB")
    assert convert("68656c6c6f") == "68656c6c6f"


def test_malformed_hex_names_value():
    convert = create_converter("RAW")
    with pytest.raises(ValueConversionError) as exc_info:
        convert("HEXTORAW('zz')")
    assert "HEXTORAW('zz')" in str(exc_info.value)
    assert exc_info.value.value == "HEXTORAW('zz')"


@pytest.mark.parametrize("literal", ["HEXTORAW('68 65 6c')", "HEXTORAW('68656c\n')", "HEXTORAW('abc')"])
def test_hex_payload_must_be_contiguous_digits(literal):
    with pytest.raises(ValueConversionError):
        create_converter("RAW")(literal)


def test_numeric_keeps_precision_and_scientific_notation():
    convert = create_converter("NUMBER(10,2)")
    assert convert("12345678901234567890.123456789") == Decimal("12345678901234567890.123456789")
    assert convert("1.223E-002") == Decimal("0.01223")
    assert isinstance(convert("7"), Decimal)


@pytest.mark.parametrize("literal", ["abc", "1_000", "NaN", "Infinity", "-Infinity", "sNaN"])
def test_numeric_rejects_garbage(literal):
    with pytest.raises(ValueConversionError):
        create_converter("NUMBER")(literal)


def test_text_unchanged():
    assert create_converter("VARCHAR2(5)")("  x ") == "  x "


def test_clob_becomes_utf8_bytes():
    assert create_converter("CLOB")("héllo") == "héllo".encode("utf-8")


@pytest.mark.parametrize("literal, expected", [
    ("2021-05-17 15:08:27", datetime(2021, 5, 17, 15, 8, 27)),
    ("2021-05-17", datetime(2021, 5, 17)),
    ("2021-05-17T15:08", datetime(2021, 5, 17, 15, 8)),
    ("2021-05-17 15:08:27.5", datetime(2021, 5, 17, 15, 8, 27, 500000)),
    ("2021-05-17 15:08:27.123456789", datetime(2021, 5, 17, 15, 8, 27, 123456)),
    ("TO_DATE('2021-05-17 15:08:27', 'YYYY-MM-DD HH24:MI:SS')", datetime(2021, 5, 17, 15, 8, 27)),
    ("TO_TIMESTAMP('2021-05-17 15:08:27.000100')", datetime(2021, 5, 17, 15, 8, 27, 100)),
])
def test_parse_timestamp(literal, expected):
    assert parse_timestamp(literal) == expected
    assert create_converter("DATE")(literal) == expected


@pytest.mark.parametrize("literal", ["yesterday", "2021-13-01", "17/05/2021"])
def test_parse_timestamp_rejects_bad_literals(literal):
    with pytest.raises(ValueConversionError):
        parse_timestamp(literal)


@pytest.mark.parametrize("declared", ["NUMBER", "VARCHAR2", "RAW", "DATE", "CLOB"])
def test_null_converts_to_null(declared):
    assert create_converter(declared)(None) is None


def test_nullable_never_calls_parser_for_null():
    parser = Mock(return_value="parsed")
    convert = nullable(parser)

    assert convert(None) is None
    parser.assert_not_called()

    assert convert("x") == "parsed"
    parser.assert_called_once_with("x")

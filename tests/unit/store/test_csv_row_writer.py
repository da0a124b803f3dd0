"""Unit tests for CSV row rendering."""

from __future__ import annotations

import csv
import io

import pytest

from core.errors import PixrowStoreError
from core.types import ColumnType, RawByteBitmap, RowField, TextArrayLiteral
from serve.streaming_field import StreamingField
from store.csv_row_writer import render_array_literal, render_field, write_csv_rows


def test_render_field_formats_bytea_as_hex() -> None:
    """BYTEA values should use the \\x hex escape."""
    assert render_field(RowField(ColumnType.BYTEA, b"\x01\x00\xff")) == "\\x0100ff"


def test_render_array_literal_handles_nesting() -> None:
    """Nested lists should render as nested brace groups."""
    assert render_array_literal([[1, 0], [0, 1]]) == "{{1,0},{0,1}}"


def test_render_array_literal_quotes_special_elements() -> None:
    """Elements PostgreSQL would misread should be quoted and escaped."""
    rendered = render_array_literal(["a b", "", "NULL", 'x"y', "c{d}", "plain"])

    assert rendered == '{"a b","","NULL","x\\"y","c{d}",plain}'


def test_render_field_rejects_values_of_wrong_shape() -> None:
    """Array columns need list values."""
    with pytest.raises(PixrowStoreError):
        render_field(RowField(ColumnType.INT_ARRAY, "1,2,3"))


def test_write_csv_rows_streams_image_columns() -> None:
    """Rows should parse back as six CSV values."""
    text_row = [
        RowField(ColumnType.TEXT_ARRAY, ["/images/cats/a.png"]),
        RowField(ColumnType.TEXT_ARRAY, ["a.png"]),
        RowField(ColumnType.TEXT_ARRAY, ["cats"]),
        RowField(ColumnType.INT_ARRAY, [[1, 0]]),
        RowField(ColumnType.INT_ARRAY, [1, 1, 1, 3]),
        StreamingField(ColumnType.INT_ARRAY, iter([TextArrayLiteral("{{1,2,3}}")]), True),
    ]
    binary_row = [
        RowField(ColumnType.TEXT, "/images/dogs/b.png"),
        RowField(ColumnType.TEXT, "b.png"),
        RowField(ColumnType.TEXT, "dogs"),
        RowField(ColumnType.BYTEA, b"\x00\x01"),
        RowField(ColumnType.INT_ARRAY, [1, 1, 3]),
        StreamingField(ColumnType.BYTEA, iter([RawByteBitmap(b"\x04\x05\x06")]), False),
    ]
    stream = io.StringIO()

    row_count = write_csv_rows([text_row, binary_row], stream)

    assert row_count == 2
    parsed = list(csv.reader(io.StringIO(stream.getvalue())))
    assert parsed == [
        [
            "{/images/cats/a.png}",
            "{a.png}",
            "{cats}",
            "{{1,0}}",
            "{1,1,1,3}",
            "{{{{1,2,3}}}}",
        ],
        ["/images/dogs/b.png", "b.png", "dogs", "\\x0001", "{1,1,3}", "\\x040506"],
    ]

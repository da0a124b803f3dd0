"""CSV rendering of image table rows.

This module writes rows in PostgreSQL CSV conventions for bulk loading:
arrays as ``{...}`` literals, bytea as ``\\x`` hex, and streaming image
columns drained piece by piece.
"""

from __future__ import annotations

from typing import Iterable, Sequence, TextIO

from core.errors import PixrowStoreError
from core.types import ColumnType, RowField
from serve.row_resolver import OutputField
from serve.streaming_field import StreamingField

_ARRAY_ELEMENT_SPECIALS = frozenset('{},"\\')
_CSV_SPECIALS = frozenset(',"\r\n')


def write_csv_rows(rows: Iterable[Sequence[OutputField]], stream: TextIO) -> int:
    """Write rows as CSV lines.

    Args:
        rows: Rows of output fields.
        stream: Writable text stream.

    Returns:
        Number of rows written.

    Raises:
        PixrowStoreError: If a field value cannot be rendered.
    """
    row_count = 0
    for row in rows:
        write_csv_row(row, stream)
        row_count += 1
    return row_count


def write_csv_row(row: Sequence[OutputField], stream: TextIO) -> None:
    """Write one row as a CSV line, streaming image pieces as they arrive."""
    for position, field in enumerate(row):
        if position:
            stream.write(",")
        if isinstance(field, StreamingField):
            _write_streaming_field(field, stream)
        else:
            stream.write(_quote_csv(render_field(field)))
    stream.write("\n")


def render_field(field: RowField) -> str:
    """Render a materialized field as PostgreSQL text input.

    Raises:
        PixrowStoreError: If the value does not fit the column type.
    """
    value = field.value
    if field.column_type == ColumnType.BYTEA:
        if not isinstance(value, (bytes, bytearray)):
            raise PixrowStoreError(f"BYTEA field expects bytes, got {type(value).__name__}.")
        return "\\x" + bytes(value).hex()
    if field.column_type == ColumnType.TEXT:
        return str(value)
    if not isinstance(value, list):
        raise PixrowStoreError(
            f"{field.column_type.value} field expects a list, got {type(value).__name__}."
        )
    return render_array_literal(value)


def render_array_literal(values: list) -> str:
    """Render a (nested) list as a PostgreSQL array literal."""
    rendered = [
        render_array_literal(value) if isinstance(value, list) else _quote_array_element(value)
        for value in values
    ]
    return "{" + ",".join(rendered) + "}"


def _write_streaming_field(field: StreamingField, stream: TextIO) -> None:
    """Drain a streaming field into the stream inside one quoted CSV value."""
    stream.write('"')
    if field.is_binary:
        stream.write("\\x")
        for piece in field:
            stream.write(bytes(piece).hex() if isinstance(piece, bytes) else piece)
    else:
        for piece in field:
            stream.write(piece if isinstance(piece, str) else piece.decode("ascii"))
    stream.write('"')


def _quote_array_element(value: object) -> str:
    """Quote one array element when PostgreSQL would misread it bare."""
    if isinstance(value, int):
        return str(value)
    text = str(value)
    needs_quotes = (
        not text
        or text.upper() == "NULL"
        or any(char in _ARRAY_ELEMENT_SPECIALS or char.isspace() for char in text)
    )
    if not needs_quotes:
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _quote_csv(text: str) -> str:
    """Quote a CSV value when it holds separators, quotes or is empty."""
    if text and not any(char in _CSV_SPECIALS for char in text):
        return text
    return '"' + text.replace('"', '""') + '"'

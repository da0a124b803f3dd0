"""Row field resolution for image fragments.

This module maps prepared fragment columns onto the six output fields
(full paths, names, directories, labels, dimensions, images) in the
shape negotiated from the destination column types.
"""

from __future__ import annotations

from typing import Union

from core.constants import FILES_PER_FRAGMENT_OPTION
from core.errors import PixrowConfigError
from core.types import ColumnType, FragmentColumns, ImageTableSchema, OutputShape, RowField
from serve.encode_engine import EncodeEngine
from serve.streaming_field import StreamingField
from transforms.one_hot_labels import pack_label_bytes

OutputField = Union[RowField, StreamingField]


def resolve_row_fields(
    columns: FragmentColumns,
    engine: EncodeEngine,
    schema: ImageTableSchema,
) -> list[OutputField]:
    """Build the output fields of one fragment row.

    Args:
        columns: Metadata columns returned by ``EncodeEngine.prepare``.
        engine: Prepared encode engine feeding the image column.
        schema: Destination column types.

    Returns:
        Six fields in table column order; the last one streams images.

    Raises:
        PixrowConfigError: If scalar columns receive more than one image.
    """
    shape = engine.shape
    if shape.scalar_mode:
        fields = _scalar_metadata_fields(columns, shape)
    else:
        fields = _array_metadata_fields(columns, shape)
    fields.append(RowField(ColumnType.INT_ARRAY, list(columns.dimensions)))
    fields.append(StreamingField(schema.images, engine, array_mode=not shape.scalar_mode))
    return fields


def _scalar_metadata_fields(columns: FragmentColumns, shape: OutputShape) -> list[OutputField]:
    """Single-image row: plain text values and one label vector."""
    if len(columns.full_paths) != 1:
        raise PixrowConfigError(
            f"TEXT path columns hold one image per row, but the fragment has "
            f"{len(columns.full_paths)}. Set {FILES_PER_FRAGMENT_OPTION}=1 or use TEXT[] columns."
        )
    label = columns.labels[0]
    label_field = (
        RowField(ColumnType.BYTEA, pack_label_bytes([label]))
        if shape.label_as_bytes
        else RowField(ColumnType.INT_ARRAY, list(label))
    )
    return [
        RowField(ColumnType.TEXT, columns.full_paths[0]),
        RowField(ColumnType.TEXT, columns.names[0]),
        RowField(ColumnType.TEXT, columns.directories[0]),
        label_field,
    ]


def _array_metadata_fields(columns: FragmentColumns, shape: OutputShape) -> list[OutputField]:
    """Multi-image row: text arrays and a label matrix."""
    label_field = (
        RowField(ColumnType.BYTEA, pack_label_bytes(columns.labels))
        if shape.label_as_bytes
        else RowField(ColumnType.INT_ARRAY, [list(label) for label in columns.labels])
    )
    return [
        RowField(ColumnType.TEXT_ARRAY, list(columns.full_paths)),
        RowField(ColumnType.TEXT_ARRAY, list(columns.names)),
        RowField(ColumnType.TEXT_ARRAY, list(columns.directories)),
        label_field,
    ]

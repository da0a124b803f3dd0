"""Unit tests for column type negotiation models."""

from __future__ import annotations

import pytest

from core.errors import PixrowConfigError
from core.types import ColumnType, ImageTableSchema, OutputShape
from tests.image_fixtures import decoded_image


@pytest.mark.parametrize(
    ("ddl_type", "expected"),
    [
        ("text", ColumnType.TEXT),
        ("TEXT[]", ColumnType.TEXT_ARRAY),
        ("integer[]", ColumnType.INT_ARRAY),
        ("bigint[]", ColumnType.INT_ARRAY),
        ("double  precision[]", ColumnType.REAL_ARRAY),
        (" bytea ", ColumnType.BYTEA),
    ],
)
def test_column_type_parse_accepts_aliases(ddl_type: str, expected: ColumnType) -> None:
    """DDL names should map onto the supported column types."""
    assert ColumnType.parse(ddl_type) == expected


def test_column_type_parse_rejects_unknown_type() -> None:
    """Unsupported DDL types should fail with a config error."""
    with pytest.raises(PixrowConfigError):
        ColumnType.parse("JSONB")


def test_from_ddl_requires_six_columns() -> None:
    """Schema needs a type for every image table column."""
    with pytest.raises(PixrowConfigError):
        ImageTableSchema.from_ddl(["TEXT[]", "TEXT[]"])


def test_schema_rejects_mismatched_path_columns() -> None:
    """Names and directories must share the full-path column shape."""
    with pytest.raises(PixrowConfigError):
        ImageTableSchema.from_ddl(["TEXT", "TEXT[]", "TEXT", "INT[]", "INT[]", "INT[]"])


def test_schema_rejects_text_image_column() -> None:
    """Images cannot be written into a TEXT column."""
    with pytest.raises(PixrowConfigError):
        ImageTableSchema(images=ColumnType.TEXT)


def test_output_shape_from_scalar_binary_schema() -> None:
    """TEXT paths and BYTEA columns select scalar, byte-packed output."""
    schema = ImageTableSchema.from_ddl(["TEXT", "TEXT", "TEXT", "BYTEA", "INT[]", "BYTEA"])

    shape = OutputShape.from_schema(schema, normalize=True)

    assert shape == OutputShape(
        scalar_mode=True, label_as_bytes=True, pixels_as_bytes=True, normalize=True
    )


def test_output_shape_from_default_schema() -> None:
    """Default array columns select array mode with numeric arrays."""
    shape = OutputShape.from_schema(ImageTableSchema(), normalize=False)

    assert (shape.scalar_mode, shape.label_as_bytes, shape.pixels_as_bytes) == (
        False,
        False,
        False,
    )


def test_decoded_image_channels_unpack_rgb() -> None:
    """Packed pixels should unpack into row-major R,G,B channels."""
    image = decoded_image([[(1, 2, 3), (4, 5, 6)]])

    assert image.channels().tolist() == [[[1, 2, 3], [4, 5, 6]]]

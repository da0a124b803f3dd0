"""Shared typed models.

This module defines immutable data models used by ingest, transforms,
serving and store layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

import numpy as np

from core.constants import COLUMN_NAMES
from core.errors import PixrowConfigError


@dataclass(frozen=True)
class ImageDescriptor:
    """One source image assigned to a fragment.

    Attributes:
        path: Full URI of the image file.
        label_index: Position of the one-hot bit for this image.
        label_count: Length of the one-hot label vector.
    """

    path: str
    label_index: int
    label_count: int


@dataclass(frozen=True)
class FragmentRequest:
    """Ordered image descriptors that make up one output row.

    Attributes:
        prefix: Common path prefix shared by every descriptor.
        descriptors: Descriptors in output column order.
    """

    prefix: str
    descriptors: tuple[ImageDescriptor, ...]

    def __len__(self) -> int:
        return len(self.descriptors)


@dataclass(frozen=True)
class FileSplit:
    """Split assigned to a parallel scan worker; only its start offset matters."""

    path: str
    start: int = 0


@dataclass(frozen=True, eq=False)
class DecodedImage:
    """Decoded pixel buffer.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        pixels: Packed ``0xRRGGBB`` integers, row-major, ``width * height`` long.
    """

    width: int
    height: int
    pixels: np.ndarray

    def channels(self) -> np.ndarray:
        """Return the pixels as a ``(height, width, 3)`` uint8 array."""
        packed = self.pixels.astype(np.uint32, copy=False).reshape(self.height, self.width)
        channels = np.empty((self.height, self.width, 3), dtype=np.uint8)
        channels[..., 0] = (packed >> 16) & 0xFF
        channels[..., 1] = (packed >> 8) & 0xFF
        channels[..., 2] = packed & 0xFF
        return channels


class ColumnType(str, Enum):
    """Destination column types understood by the row resolver."""

    TEXT = "TEXT"
    TEXT_ARRAY = "TEXT[]"
    INT_ARRAY = "INT[]"
    REAL_ARRAY = "REAL[]"
    BYTEA = "BYTEA"

    @classmethod
    def parse(cls, ddl_type: str) -> "ColumnType":
        """Parse a DDL type name into a column type.

        Args:
            ddl_type: Type name such as ``TEXT[]`` or ``bytea``.

        Returns:
            Matching column type.

        Raises:
            PixrowConfigError: If the type is not supported.
        """
        normalized = " ".join(ddl_type.strip().upper().split())
        resolved = _COLUMN_TYPE_ALIASES.get(normalized)
        if resolved is None:
            raise PixrowConfigError(
                f"Unsupported column type '{ddl_type}'. "
                "Use TEXT, TEXT[], INT[], REAL[] or BYTEA."
            )
        return resolved


_COLUMN_TYPE_ALIASES = {
    "TEXT": ColumnType.TEXT,
    "TEXT[]": ColumnType.TEXT_ARRAY,
    "INT[]": ColumnType.INT_ARRAY,
    "INTEGER[]": ColumnType.INT_ARRAY,
    "INT4[]": ColumnType.INT_ARRAY,
    "INT8[]": ColumnType.INT_ARRAY,
    "BIGINT[]": ColumnType.INT_ARRAY,
    "REAL[]": ColumnType.REAL_ARRAY,
    "FLOAT4[]": ColumnType.REAL_ARRAY,
    "FLOAT8[]": ColumnType.REAL_ARRAY,
    "DOUBLE PRECISION[]": ColumnType.REAL_ARRAY,
    "BYTEA": ColumnType.BYTEA,
}


@dataclass(frozen=True)
class ImageTableSchema:
    """Negotiated types of the six image table columns."""

    full_paths: ColumnType = ColumnType.TEXT_ARRAY
    names: ColumnType = ColumnType.TEXT_ARRAY
    directories: ColumnType = ColumnType.TEXT_ARRAY
    labels: ColumnType = ColumnType.INT_ARRAY
    dimensions: ColumnType = ColumnType.INT_ARRAY
    images: ColumnType = ColumnType.INT_ARRAY

    def __post_init__(self) -> None:
        _validate_schema(self)

    @classmethod
    def from_ddl(cls, ddl_types: Sequence[str]) -> "ImageTableSchema":
        """Build a schema from six DDL type names in column order.

        Args:
            ddl_types: Types for fullpaths, names, directories,
                one_hot_encodings, dimensions and images.

        Returns:
            Validated schema.

        Raises:
            PixrowConfigError: If the count or any type is invalid.
        """
        if len(ddl_types) != len(COLUMN_NAMES):
            raise PixrowConfigError(
                f"Expected {len(COLUMN_NAMES)} column types "
                f"({', '.join(COLUMN_NAMES)}), got {len(ddl_types)}."
            )
        return cls(*(ColumnType.parse(ddl_type) for ddl_type in ddl_types))


def _validate_schema(schema: ImageTableSchema) -> None:
    """Reject column type combinations the resolver cannot produce."""
    if schema.full_paths not in (ColumnType.TEXT, ColumnType.TEXT_ARRAY):
        raise PixrowConfigError(
            f"Column fullpaths must be TEXT or TEXT[], got {schema.full_paths.value}."
        )
    for name, column_type in (("names", schema.names), ("directories", schema.directories)):
        if column_type != schema.full_paths:
            raise PixrowConfigError(
                f"Column {name} must match fullpaths type {schema.full_paths.value}, "
                f"got {column_type.value}."
            )
    if schema.labels not in (ColumnType.INT_ARRAY, ColumnType.BYTEA):
        raise PixrowConfigError(
            f"Column one_hot_encodings must be INT[] or BYTEA, got {schema.labels.value}."
        )
    if schema.dimensions != ColumnType.INT_ARRAY:
        raise PixrowConfigError(
            f"Column dimensions must be INT[], got {schema.dimensions.value}."
        )
    if schema.images not in (ColumnType.INT_ARRAY, ColumnType.REAL_ARRAY, ColumnType.BYTEA):
        raise PixrowConfigError(
            f"Column images must be INT[], REAL[] or BYTEA, got {schema.images.value}."
        )


@dataclass(frozen=True)
class OutputShape:
    """Row encoding decisions derived once per fragment."""

    scalar_mode: bool
    label_as_bytes: bool
    pixels_as_bytes: bool
    normalize: bool

    @classmethod
    def from_schema(cls, schema: ImageTableSchema, normalize: bool) -> "OutputShape":
        """Derive the output shape from negotiated column types."""
        return cls(
            scalar_mode=schema.full_paths == ColumnType.TEXT,
            label_as_bytes=schema.labels == ColumnType.BYTEA,
            pixels_as_bytes=schema.images == ColumnType.BYTEA,
            normalize=normalize,
        )


@dataclass(frozen=True)
class TextArrayLiteral:
    """Image rendered as nested array literal rows."""

    text: str


@dataclass(frozen=True)
class RawByteBitmap:
    """Image rendered as ``w*h*3`` RGB bytes."""

    data: bytes


@dataclass(frozen=True)
class NormalizedFloatBitmap:
    """Image rendered as ``w*h*3`` big-endian float32 channel values."""

    data: bytes


EncodedImage = Union[TextArrayLiteral, RawByteBitmap, NormalizedFloatBitmap]


@dataclass(frozen=True)
class FragmentColumns:
    """Per-row metadata columns built before image streaming starts.

    Attributes:
        full_paths: URI path component of every image.
        names: File names.
        directories: Parent directory names.
        labels: One-hot label vectors.
        dimensions: ``[count,] height, width, 3``.
    """

    full_paths: list[str]
    names: list[str]
    directories: list[str]
    labels: list[list[int]]
    dimensions: list[int]


@dataclass(frozen=True)
class RowField:
    """One materialized output field.

    Attributes:
        column_type: Destination column type.
        value: Scalar text, bytes, or a (possibly nested) list.
    """

    column_type: ColumnType
    value: object

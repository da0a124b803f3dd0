"""Public SDK surface for Pixrow.

This module provides a stable import path for library users.
It re-exports the client, typed models and error hierarchy.
"""

from __future__ import annotations

from typing import Iterator, Mapping, TextIO

from core.config import PixrowConfig
from core.errors import (
    DimensionMismatchError,
    EmptyFragmentError,
    EncodeFailedError,
    FilesystemUnavailableError,
    ImageDecodeFailedError,
    MalformedDescriptorError,
    NoDecodedImagesError,
    PixrowError,
    StreamExhaustedError,
)
from core.types import ColumnType, FileSplit, ImageTableSchema, RowField
from ingest.descriptor_parser import parse_fragment_descriptor
from serve.image_scan import ImageFragmentScanner
from serve.row_resolver import OutputField
from serve.streaming_field import StreamingField
from store.csv_row_writer import write_csv_rows


class PixrowClient:
    """Primary SDK entry point for image fragment scans."""

    def __init__(self, config: PixrowConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
        """
        self._config = config or PixrowConfig.from_env()

    def scan_rows(
        self,
        data_source: str,
        schema: ImageTableSchema | None = None,
        split: FileSplit | None = None,
        options: Mapping[str, str] | None = None,
    ) -> Iterator[list[OutputField]]:
        """Scan one fragment into rows.

        Args:
            data_source: Descriptor string from the fragment planner.
            schema: Destination column types; defaults to array columns.
            split: Split assigned to the caller; defaults to the owning split.
            options: Per-request options such as ACCESSOR_THREADS.

        Returns:
            Iterator over zero or one rows.
        """
        config = self._config.with_options(options or {})
        scanner = ImageFragmentScanner(config, schema or ImageTableSchema())
        return scanner.scan(data_source, split)

    def write_csv(
        self,
        data_source: str,
        stream: TextIO,
        schema: ImageTableSchema | None = None,
        split: FileSplit | None = None,
        options: Mapping[str, str] | None = None,
    ) -> int:
        """Scan one fragment and write its row as CSV.

        Returns:
            Number of rows written.
        """
        return write_csv_rows(self.scan_rows(data_source, schema, split, options), stream)


__all__ = [
    "ColumnType",
    "DimensionMismatchError",
    "EmptyFragmentError",
    "EncodeFailedError",
    "FileSplit",
    "FilesystemUnavailableError",
    "ImageDecodeFailedError",
    "ImageTableSchema",
    "MalformedDescriptorError",
    "NoDecodedImagesError",
    "PixrowClient",
    "PixrowConfig",
    "PixrowError",
    "RowField",
    "StreamExhaustedError",
    "StreamingField",
    "parse_fragment_descriptor",
]

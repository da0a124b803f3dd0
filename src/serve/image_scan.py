"""Fragment scan orchestration.

This module ties the segment gate, fetch engine, encode engine and row
resolver together. A scan of one fragment yields at most one row.
"""

from __future__ import annotations

from typing import Iterator

from core.config import PixrowConfig
from core.constants import DESCRIPTOR_ENTRY_SEPARATOR
from core.logging_config import get_logger
from core.types import FileSplit, ImageTableSchema, OutputShape
from ingest.descriptor_parser import parse_fragment_descriptor
from ingest.fetch_engine import FetchEngine, FileSystemFactory
from ingest.filesystem import open_filesystem
from ingest.segment_gate import is_working_segment
from serve.encode_engine import EncodeEngine
from serve.row_resolver import OutputField, resolve_row_fields

_LOGGER = get_logger(__name__)


class ImageFragmentScanner:
    """Produces image table rows from data-source descriptors."""

    def __init__(
        self,
        config: PixrowConfig,
        schema: ImageTableSchema,
        filesystem_factory: FileSystemFactory = open_filesystem,
    ) -> None:
        self._config = config
        self._schema = schema
        self._filesystem_factory = filesystem_factory

    def scan(self, data_source: str, split: FileSplit | None = None) -> Iterator[list[OutputField]]:
        """Yield the row of one fragment when this worker owns it.

        Args:
            data_source: Descriptor string from the fragment planner.
            split: Split assigned to this worker; defaults to the owning split.

        Yields:
            One list of output fields, or nothing for non-owning workers.

        Raises:
            PixrowIngestError: If parsing, filesystem access or decoding fails.
                Non-owning workers return before the descriptor is parsed.
            PixrowEncodeError: If encoding fails.
        """
        prefix = data_source.split(DESCRIPTOR_ENTRY_SEPARATOR, 1)[0]
        split = split or FileSplit(path=prefix)
        if not is_working_segment(split):
            _LOGGER.info("segment_not_owner", prefix=prefix, split_start=split.start)
            return
        request = parse_fragment_descriptor(data_source)
        fetch_engine = FetchEngine(self._config, self._filesystem_factory)
        fetch_engine.open(request, split)
        encode_engine = EncodeEngine(fetch_engine, self._config)
        shape = OutputShape.from_schema(self._schema, self._config.normalize)
        columns = encode_engine.prepare(request, shape)
        fields = resolve_row_fields(columns, encode_engine, self._schema)
        _LOGGER.info("fragment_row_emitted", prefix=request.prefix, image_count=len(request))
        yield fields

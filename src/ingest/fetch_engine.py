"""Chunked concurrent image fetching.

This module reads and decodes the images of one fragment in chunks of
at most ``accessor_threads`` files. Each chunk fans out to a short-lived
thread pool and joins before any image of the chunk is returned.
"""

from __future__ import annotations

from concurrent import futures
from enum import Enum
from typing import Callable

from core.config import PixrowConfig
from core.errors import ImageDecodeFailedError
from core.logging_config import get_logger
from core.types import DecodedImage, FileSplit, FragmentRequest, ImageDescriptor
from ingest.filesystem import ImageFileSystem, open_filesystem
from ingest.segment_gate import is_working_segment
from transforms.image_decoding import decode_image

_LOGGER = get_logger(__name__)

FileSystemFactory = Callable[[str, PixrowConfig], ImageFileSystem]


class FetchState(str, Enum):
    """Lifecycle of a fetch engine."""

    UNOPENED = "unopened"
    OPEN = "open"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class FetchEngine:
    """Pull-based decoder over the descriptors of one fragment."""

    def __init__(
        self,
        config: PixrowConfig,
        filesystem_factory: FileSystemFactory = open_filesystem,
    ) -> None:
        self._config = config
        self._filesystem_factory = filesystem_factory
        self._filesystem: ImageFileSystem | None = None
        self._descriptors: tuple[ImageDescriptor, ...] = ()
        self._cursor = 0
        self.state = FetchState.UNOPENED
        self.chunk_sizes: list[int] = []

    @property
    def descriptor_count(self) -> int:
        return len(self._descriptors)

    def open(self, request: FragmentRequest, split: FileSplit) -> bool:
        """Bind the engine to a fragment when this worker owns it.

        Args:
            request: Parsed fragment request.
            split: Split assigned to the current worker.

        Returns:
            Whether there are images to fetch.

        Raises:
            FilesystemUnavailableError: If the filesystem handle cannot be created.
        """
        if not is_working_segment(split):
            return False
        if request.descriptors:
            self._filesystem = self._filesystem_factory(request.descriptors[0].path, self._config)
        self._descriptors = request.descriptors
        self._cursor = 0
        self.state = FetchState.OPEN if self._descriptors else FetchState.EXHAUSTED
        _LOGGER.info(
            "fragment_opened",
            prefix=request.prefix,
            image_count=len(self._descriptors),
            accessor_threads=self._config.accessor_threads,
        )
        return bool(self._descriptors)

    def has_next(self) -> bool:
        """Return whether unread descriptors remain."""
        return self.state == FetchState.OPEN and self._cursor < len(self._descriptors)

    def next_chunk(self) -> list[DecodedImage] | None:
        """Decode the next chunk of images.

        Returns:
            Decoded images in descriptor order, or None at end of stream
            and after a failed chunk, which is never retried.

        Raises:
            ImageDecodeFailedError: If any file of the chunk cannot be read.
        """
        if not self.has_next():
            return None
        chunk = self._descriptors[self._cursor : self._cursor + self._config.accessor_threads]
        try:
            images = self._decode_chunk(chunk)
        except ImageDecodeFailedError:
            self.state = FetchState.FAILED
            raise
        self._cursor += len(chunk)
        self.chunk_sizes.append(len(chunk))
        if self._cursor == len(self._descriptors):
            self.state = FetchState.EXHAUSTED
        _LOGGER.debug("fetch_chunk_decoded", chunk_size=len(chunk), cursor=self._cursor)
        return images

    def _decode_chunk(self, chunk: tuple[ImageDescriptor, ...]) -> list[DecodedImage]:
        """Decode every descriptor of a chunk concurrently and join.

        Results are collected by slot, so the first failing descriptor in
        chunk order is the one reported.
        """
        filesystem = self._filesystem
        if filesystem is None:
            raise RuntimeError("FetchEngine.next_chunk() called before open().")
        with futures.ThreadPoolExecutor(
            max_workers=len(chunk), thread_name_prefix="pixrow-fetch"
        ) as executor:
            slots = [executor.submit(_fetch_one, filesystem, descriptor) for descriptor in chunk]
        return [slot.result() for slot in slots]


def _fetch_one(filesystem: ImageFileSystem, descriptor: ImageDescriptor) -> DecodedImage:
    """Read and decode one image file.

    Raises:
        ImageDecodeFailedError: If the file cannot be read or decoded.
    """
    try:
        data = filesystem.read_bytes(descriptor.path)
        return decode_image(data)
    except (OSError, ValueError) as error:
        raise ImageDecodeFailedError(descriptor.path, str(error)) from error

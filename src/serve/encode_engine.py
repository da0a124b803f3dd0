"""Chunked concurrent image encoding.

This module pairs with a FetchEngine and turns every decoded image of a
fragment into its wire representation. Encoding runs one chunk at a
time, mirroring the fetch chunk, and results are handed out one image
per pull in descriptor order.
"""

from __future__ import annotations

from concurrent import futures
from pathlib import PurePosixPath
from typing import Iterator

from core.config import PixrowConfig
from core.constants import NUM_CHANNELS
from core.errors import (
    DimensionMismatchError,
    EmptyFragmentError,
    EncodeFailedError,
    NoDecodedImagesError,
    PixrowEncodeError,
    PixrowError,
    StreamExhaustedError,
)
from core.logging_config import get_logger
from core.types import (
    DecodedImage,
    EncodedImage,
    FragmentColumns,
    FragmentRequest,
    OutputShape,
)
from ingest.fetch_engine import FetchEngine
from ingest.filesystem import uri_path
from transforms.one_hot_labels import one_hot_vector
from transforms.pixel_encoding import (
    IntensityLookup,
    encode_byte_bitmap,
    encode_normalized_bitmap,
    encode_text_array,
)

_LOGGER = get_logger(__name__)


class EncodeEngine:
    """Single-pass stream of encoded images for one fragment.

    ``prepare`` must be called once before pulling. The engine then
    alternates between encoding the buffered fetch chunk and pulling the
    next one, so fetch and encode always step through the same chunks.
    """

    def __init__(self, fetch_engine: FetchEngine, config: PixrowConfig) -> None:
        self._fetch_engine = fetch_engine
        self._config = config
        self._request: FragmentRequest | None = None
        self._shape: OutputShape | None = None
        self._lookup = IntensityLookup.build(config.normalize)
        self._pending: list[DecodedImage] | None = None
        self._encoded: list[EncodedImage] = []
        self._slot = 0
        self._produced = 0
        self._image_count = 0
        self._failure: PixrowError | None = None
        self.width = 0
        self.height = 0

    @property
    def shape(self) -> OutputShape:
        if self._shape is None:
            raise PixrowEncodeError("EncodeEngine.prepare() has not been called.")
        return self._shape

    def prepare(self, request: FragmentRequest, shape: OutputShape) -> FragmentColumns:
        """Pull the first fetch chunk and build the metadata columns.

        Args:
            request: Fragment request already opened on the fetch engine.
            shape: Output shape negotiated from the destination columns.

        Returns:
            Paths, names, directories, labels and dimensions of the row.

        Raises:
            EmptyFragmentError: If the request has no descriptors.
            NoDecodedImagesError: If the first fetch chunk is empty.
            ImageDecodeFailedError: If an image of the first chunk is unreadable.
            PixrowEncodeError: If the engine was already prepared.
        """
        if self._shape is not None:
            raise PixrowEncodeError(
                "EncodeEngine.prepare() was already called. Create one engine per fragment."
            )
        if not request.descriptors:
            raise EmptyFragmentError(
                f"Fragment with prefix '{request.prefix}' has no image descriptors. "
                "Check the fragment planner output."
            )
        first_chunk = self._fetch_engine.next_chunk()
        if not first_chunk:
            raise NoDecodedImagesError(
                f"No images were decoded for fragment with prefix '{request.prefix}' "
                f"despite {len(request.descriptors)} descriptors."
            )
        self._request = request
        self._shape = shape
        if shape.normalize != self._config.normalize:
            self._lookup = IntensityLookup.build(shape.normalize)
        self._pending = first_chunk
        self._image_count = len(request.descriptors)
        self.width = first_chunk[0].width
        self.height = first_chunk[0].height
        columns = _build_columns(request, shape, self.width, self.height)
        _LOGGER.info(
            "fragment_prepared",
            image_count=self._image_count,
            width=self.width,
            height=self.height,
            scalar_mode=shape.scalar_mode,
            pixels_as_bytes=shape.pixels_as_bytes,
            normalize=shape.normalize,
        )
        return columns

    def has_next(self) -> bool:
        """Return whether images remain to be pulled."""
        return self._produced < self._image_count

    def next_image(self) -> EncodedImage:
        """Return the next encoded image in descriptor order.

        A failed pull ends the stream; later pulls raise StreamExhaustedError.

        Raises:
            StreamExhaustedError: If every image was already returned.
            DimensionMismatchError: If an image differs in size from the first.
            EncodeFailedError: If an encode task fails.
            ImageDecodeFailedError: If the following fetch chunk fails.
        """
        if self._failure is not None:
            raise StreamExhaustedError(
                f"Image stream stopped after a failure at image {self._produced}."
            ) from self._failure
        if not self.has_next():
            raise StreamExhaustedError(
                f"Image stream exhausted after {self._produced} images."
            )
        if self._slot == len(self._encoded):
            try:
                self._encode_pending_chunk()
            except PixrowError as error:
                self._failure = error
                raise
        encoded = self._encoded[self._slot]
        self._slot += 1
        self._produced += 1
        return encoded

    def __iter__(self) -> Iterator[EncodedImage]:
        return self

    def __next__(self) -> EncodedImage:
        if not self.has_next():
            raise StopIteration
        return self.next_image()

    def _encode_pending_chunk(self) -> None:
        """Encode the buffered fetch chunk, then pull the following one."""
        chunk = self._pending
        if not chunk:
            raise EncodeFailedError(self._produced, "fetch stream ended before the last image")
        first_index = self._produced
        with futures.ThreadPoolExecutor(
            max_workers=len(chunk), thread_name_prefix="pixrow-encode"
        ) as executor:
            slots = [
                executor.submit(self._encode_one, image, first_index + offset)
                for offset, image in enumerate(chunk)
            ]
        encoded = [slot.result() for slot in slots]
        self._pending = self._fetch_engine.next_chunk()
        self._encoded = encoded
        self._slot = 0
        _LOGGER.debug("encode_chunk_completed", chunk_size=len(chunk), first_index=first_index)

    def _encode_one(self, image: DecodedImage, index: int) -> EncodedImage:
        """Encode one image according to the output shape."""
        if (image.width, image.height) != (self.width, self.height):
            raise DimensionMismatchError(
                self._descriptor_path(index),
                expected=(self.width, self.height),
                actual=(image.width, image.height),
            )
        shape = self.shape
        try:
            if not shape.pixels_as_bytes:
                return encode_text_array(image, self._lookup)
            if shape.normalize:
                return encode_normalized_bitmap(image)
            return encode_byte_bitmap(image)
        except (ValueError, TypeError, IndexError, OverflowError) as error:
            raise EncodeFailedError(index, str(error)) from error

    def _descriptor_path(self, index: int) -> str:
        if self._request is None:
            return f"#{index}"
        return self._request.descriptors[index].path


def _build_columns(
    request: FragmentRequest, shape: OutputShape, width: int, height: int
) -> FragmentColumns:
    """Build the metadata columns aligned with descriptor order."""
    full_paths: list[str] = []
    names: list[str] = []
    directories: list[str] = []
    labels: list[list[int]] = []
    for descriptor in request.descriptors:
        full_path = uri_path(descriptor.path)
        path = PurePosixPath(full_path)
        full_paths.append(full_path)
        names.append(path.name)
        directories.append(path.parent.name)
        labels.append(one_hot_vector(descriptor))
    dimensions = [height, width, NUM_CHANNELS]
    if not shape.scalar_mode:
        dimensions.insert(0, len(request.descriptors))
    return FragmentColumns(
        full_paths=full_paths,
        names=names,
        directories=directories,
        labels=labels,
        dimensions=dimensions,
    )

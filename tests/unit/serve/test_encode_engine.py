"""Unit tests for chunked image encoding."""

from __future__ import annotations

import pytest

from core.config import PixrowConfig
from core.errors import (
    DimensionMismatchError,
    EmptyFragmentError,
    EncodeFailedError,
    ImageDecodeFailedError,
    NoDecodedImagesError,
    PixrowEncodeError,
    StreamExhaustedError,
)
from core.types import (
    FileSplit,
    NormalizedFloatBitmap,
    OutputShape,
    RawByteBitmap,
    TextArrayLiteral,
)
from ingest.descriptor_parser import parse_fragment_descriptor
from ingest.fetch_engine import FetchEngine, FetchState
from serve.encode_engine import EncodeEngine
from tests.image_fixtures import (
    MemoryFileSystem,
    MemoryFileSystemFactory,
    build_data_source,
    png_bytes,
    solid_pixels,
)

_PREFIX = "mem://bucket/images"
_OWNER = FileSplit(path=_PREFIX, start=0)
_TEXT_SHAPE = OutputShape(
    scalar_mode=False, label_as_bytes=False, pixels_as_bytes=False, normalize=False
)
_BYTES_SHAPE = OutputShape(
    scalar_mode=False, label_as_bytes=False, pixels_as_bytes=True, normalize=False
)


def _engines(
    count: int,
    threads: int,
    sizes: dict[int, tuple[int, int]] | None = None,
    broken: set[int] | None = None,
) -> tuple[FetchEngine, EncodeEngine, str]:
    entries = [(f"dir{index % 2}/{index}.png", index % 2, 2) for index in range(count)]
    files = {}
    for index, (path, _, _) in enumerate(entries):
        width, height = (sizes or {}).get(index, (3, 2))
        pixels = solid_pixels(width, height, (index, index + 1, index + 2))
        payload = b"not an image" if index in (broken or set()) else png_bytes(pixels)
        files[f"{_PREFIX}/{path}"] = payload
    config = PixrowConfig(accessor_threads=threads)
    fetch_engine = FetchEngine(config, MemoryFileSystemFactory(files))
    return fetch_engine, EncodeEngine(fetch_engine, config), build_data_source(_PREFIX, entries)


def _prepared(count: int, threads: int, shape: OutputShape = _TEXT_SHAPE, **kwargs):
    fetch_engine, encode_engine, data_source = _engines(count, threads, **kwargs)
    request = parse_fragment_descriptor(data_source)
    fetch_engine.open(request, _OWNER)
    columns = encode_engine.prepare(request, shape)
    return fetch_engine, encode_engine, columns


def test_three_images_with_two_threads_stream_in_order() -> None:
    """Every image should be pulled once before the stream reports exhaustion."""
    fetch_engine, encode_engine, _ = _prepared(3, threads=2)

    images = [encode_engine.next_image() for _ in range(3)]

    assert fetch_engine.chunk_sizes == [2, 1]
    assert [image.text for image in images] == [
        "{{0,1,2},{0,1,2},{0,1,2}},{{0,1,2},{0,1,2},{0,1,2}}",
        "{{1,2,3},{1,2,3},{1,2,3}},{{1,2,3},{1,2,3},{1,2,3}}",
        "{{2,3,4},{2,3,4},{2,3,4}},{{2,3,4},{2,3,4},{2,3,4}}",
    ]
    assert encode_engine.has_next() is False
    with pytest.raises(StreamExhaustedError):
        encode_engine.next_image()


def test_prepare_builds_columns_aligned_with_descriptors() -> None:
    """Metadata columns should follow descriptor order."""
    _, encode_engine, columns = _prepared(3, threads=2)

    assert columns.full_paths == [
        "/images/dir0/0.png",
        "/images/dir1/1.png",
        "/images/dir0/2.png",
    ]
    assert columns.names == ["0.png", "1.png", "2.png"]
    assert columns.directories == ["dir0", "dir1", "dir0"]
    assert columns.labels == [[1, 0], [0, 1], [1, 0]]
    assert columns.dimensions == [3, 2, 3, 3]
    assert (encode_engine.width, encode_engine.height) == (3, 2)


def test_prepare_omits_image_count_in_scalar_mode() -> None:
    """Scalar rows should report height, width and channels only."""
    scalar_shape = OutputShape(
        scalar_mode=True, label_as_bytes=False, pixels_as_bytes=False, normalize=False
    )

    _, _, columns = _prepared(1, threads=1, shape=scalar_shape)

    assert columns.dimensions == [2, 3, 3]


def test_encoded_type_follows_output_shape() -> None:
    """Byte shapes should pick raw or normalized bitmaps."""
    _, raw_engine, _ = _prepared(1, threads=1, shape=_BYTES_SHAPE)
    normalized_shape = OutputShape(
        scalar_mode=False, label_as_bytes=False, pixels_as_bytes=True, normalize=True
    )
    _, float_engine, _ = _prepared(1, threads=1, shape=normalized_shape)

    raw = raw_engine.next_image()
    normalized = float_engine.next_image()

    assert isinstance(raw, RawByteBitmap) and len(raw.data) == 3 * 2 * 3
    assert isinstance(normalized, NormalizedFloatBitmap) and len(normalized.data) == 3 * 2 * 3 * 4


def test_engine_iterates_remaining_images() -> None:
    """Iteration should yield the same stream as next_image."""
    _, encode_engine, _ = _prepared(4, threads=3)

    images = list(encode_engine)

    assert len(images) == 4
    assert all(isinstance(image, TextArrayLiteral) for image in images)


def test_shape_requires_prepare() -> None:
    """Reading the shape before prepare should fail."""
    _, encode_engine, _ = _engines(1, threads=1)

    with pytest.raises(PixrowEncodeError):
        encode_engine.shape


def test_prepare_rejects_empty_fragment() -> None:
    """Requests without descriptors should fail before fetching."""
    fetch_engine, encode_engine, _ = _engines(0, threads=1)
    request = parse_fragment_descriptor(_PREFIX)
    fetch_engine.open(request, _OWNER)

    with pytest.raises(EmptyFragmentError):
        encode_engine.prepare(request, _TEXT_SHAPE)


def test_prepare_rejects_fragment_without_decoded_images() -> None:
    """An empty first chunk should fail with NoDecodedImagesError."""
    fetch_engine, encode_engine, data_source = _engines(2, threads=1)
    request = parse_fragment_descriptor(data_source)
    fetch_engine.open(request, FileSplit(path=_PREFIX, start=1024))

    with pytest.raises(NoDecodedImagesError):
        encode_engine.prepare(request, _TEXT_SHAPE)


def test_dimension_mismatch_names_the_offending_file() -> None:
    """Images that differ from the first image's size should be rejected."""
    _, encode_engine, _ = _prepared(2, threads=2, sizes={1: (4, 4)})

    with pytest.raises(DimensionMismatchError) as error_info:
        encode_engine.next_image()

    assert error_info.value.path == f"{_PREFIX}/dir1/1.png"


def test_decode_failure_in_later_chunk_stops_the_stream() -> None:
    """A corrupt file after the first chunk should fail while streaming."""
    _, encode_engine, _ = _prepared(3, threads=1, broken={2})

    first = encode_engine.next_image()

    assert isinstance(first, TextArrayLiteral)
    with pytest.raises(ImageDecodeFailedError) as error_info:
        list(encode_engine)
    assert error_info.value.path == f"{_PREFIX}/dir0/2.png"


class _FailOnceFileSystem:
    """Memory filesystem whose first read of one URI raises."""

    def __init__(self, files: dict[str, bytes], failing_uri: str) -> None:
        self._filesystem = MemoryFileSystem(files)
        self._failing_uri = failing_uri
        self.failing_reads = 0

    def read_bytes(self, uri: str) -> bytes:
        if uri == self._failing_uri:
            self.failing_reads += 1
            if self.failing_reads == 1:
                raise OSError("connection reset")
        return self._filesystem.read_bytes(uri)


def test_failed_pull_ends_stream_without_retry() -> None:
    """Pulls after a mid-stream failure should not repeat or skip images."""
    entries = [(f"{index}.png", 0, 1) for index in range(3)]
    filesystem = _FailOnceFileSystem(
        {
            f"{_PREFIX}/{path}": png_bytes(solid_pixels(1, 1, (index, index, index)))
            for index, (path, _, _) in enumerate(entries)
        },
        failing_uri=f"{_PREFIX}/2.png",
    )
    config = PixrowConfig(accessor_threads=1)
    fetch_engine = FetchEngine(config, lambda uri, config: filesystem)
    encode_engine = EncodeEngine(fetch_engine, config)
    request = parse_fragment_descriptor(build_data_source(_PREFIX, entries))
    fetch_engine.open(request, _OWNER)
    encode_engine.prepare(request, _TEXT_SHAPE)

    first = encode_engine.next_image()
    with pytest.raises(ImageDecodeFailedError):
        encode_engine.next_image()
    with pytest.raises(StreamExhaustedError):
        encode_engine.next_image()

    assert first.text == "{{0,0,0}}"
    assert filesystem.failing_reads == 1
    assert fetch_engine.state == FetchState.FAILED


def test_prepare_rejects_second_call() -> None:
    """A prepared engine should not consume another fetch chunk."""
    fetch_engine, encode_engine, _ = _prepared(3, threads=1)
    request = parse_fragment_descriptor(build_data_source(_PREFIX, [("dir0/0.png", 0, 2)]))

    with pytest.raises(PixrowEncodeError):
        encode_engine.prepare(request, _TEXT_SHAPE)

    assert fetch_engine.chunk_sizes == [1]


def test_encode_failure_reports_image_index(monkeypatch: pytest.MonkeyPatch) -> None:
    """Encoder errors should surface as EncodeFailedError with the index."""

    def _broken_encoder(image):
        raise ValueError("bitmap too large")

    monkeypatch.setattr("serve.encode_engine.encode_byte_bitmap", _broken_encoder)
    _, encode_engine, _ = _prepared(2, threads=2, shape=_BYTES_SHAPE)

    with pytest.raises(EncodeFailedError) as error_info:
        encode_engine.next_image()

    assert error_info.value.index == 0

"""Lazily realized image column values.

A streaming field wraps a prepared EncodeEngine and yields the image
column one wire piece at a time, so a writer never holds every image
of a fragment in memory at once.
"""

from __future__ import annotations

from typing import Iterator, Union

from core.errors import StreamExhaustedError
from core.types import ColumnType, NormalizedFloatBitmap, RawByteBitmap, TextArrayLiteral
from serve.encode_engine import EncodeEngine

WirePiece = Union[str, bytes]


class StreamingField:
    """Image column value pulled from an encode engine.

    Binary columns yield each image's bytes. Array columns yield the
    enclosing braces and separators around each image literal so the
    joined pieces form a ``[n][h][w][3]`` (array rows) or ``[h][w][3]``
    (scalar rows) array literal.
    """

    def __init__(self, column_type: ColumnType, engine: EncodeEngine, array_mode: bool) -> None:
        self.column_type = column_type
        self.array_mode = array_mode
        self._engine = engine
        self._drained = False

    @property
    def is_binary(self) -> bool:
        return self.column_type == ColumnType.BYTEA

    def __iter__(self) -> Iterator[WirePiece]:
        if self._drained:
            raise StreamExhaustedError("Streaming field was already drained.")
        self._drained = True
        if self.is_binary:
            return self._binary_pieces()
        return self._literal_pieces()

    def materialize(self) -> WirePiece:
        """Drain the field into one value."""
        if self.is_binary:
            return b"".join(piece for piece in self if isinstance(piece, bytes))
        return "".join(piece for piece in self if isinstance(piece, str))

    def _binary_pieces(self) -> Iterator[bytes]:
        for encoded in self._engine:
            if not isinstance(encoded, (RawByteBitmap, NormalizedFloatBitmap)):
                raise TypeError(f"binary column received {type(encoded).__name__}")
            yield encoded.data

    def _literal_pieces(self) -> Iterator[str]:
        yield "{"
        for position, encoded in enumerate(self._engine):
            if not isinstance(encoded, TextArrayLiteral):
                raise TypeError(f"array column received {type(encoded).__name__}")
            if not self.array_mode:
                yield encoded.text
                continue
            if position:
                yield ","
            yield "{" + encoded.text + "}"
        yield "}"

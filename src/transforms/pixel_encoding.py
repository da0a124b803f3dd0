"""Pixel buffer encoders.

This module converts decoded images into the wire representations
loaded into the image column: nested array literal text, raw RGB
bytes, or big-endian float32 channel values.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from core.constants import INTENSITY_LEVELS, MAX_INTENSITY
from core.types import DecodedImage, NormalizedFloatBitmap, RawByteBitmap, TextArrayLiteral


@dataclass(frozen=True)
class IntensityLookup:
    """Precomputed per-channel literal fragments for all 256 intensities.

    A pixel renders as ``red[r] + green[g] + blue[b]``, for example
    ``"{10" + ",20," + "30}"``.
    """

    red: tuple[str, ...]
    green: tuple[str, ...]
    blue: tuple[str, ...]

    @classmethod
    def build(cls, normalize: bool) -> "IntensityLookup":
        """Build the table for integer or normalized float values."""
        values = [
            _float32_text(level / MAX_INTENSITY) if normalize else str(level)
            for level in range(INTENSITY_LEVELS)
        ]
        return cls(
            red=tuple("{" + value for value in values),
            green=tuple("," + value + "," for value in values),
            blue=tuple(value + "}" for value in values),
        )


def _float32_text(value: float) -> str:
    """Shortest decimal that round-trips through float32, e.g. ``0.003921569``."""
    return np.format_float_positional(np.float32(value), unique=True, trim="0")


def encode_text_array(image: DecodedImage, lookup: IntensityLookup) -> TextArrayLiteral:
    """Render an image as comma-joined array literal rows.

    Each image row becomes ``{{r,g,b},{r,g,b},...}``. The caller wraps
    the joined rows in braces to form the full ``[h][w][3]`` array.

    Args:
        image: Decoded image.
        lookup: Intensity fragments for the active value format.

    Returns:
        Text literal for the image.
    """
    channels = image.channels()
    red, green, blue = lookup.red, lookup.green, lookup.blue
    rows = []
    for row in channels.tolist():
        pixels = ",".join(red[r] + green[g] + blue[b] for r, g, b in row)
        rows.append("{" + pixels + "}")
    return TextArrayLiteral(",".join(rows))


def encode_byte_bitmap(image: DecodedImage) -> RawByteBitmap:
    """Render an image as ``w*h*3`` bytes in R,G,B row-major order."""
    return RawByteBitmap(image.channels().tobytes())


def encode_normalized_bitmap(image: DecodedImage) -> NormalizedFloatBitmap:
    """Render an image as big-endian ``float32(channel / 255.0)`` values."""
    scaled = image.channels().astype(np.float64) / MAX_INTENSITY
    return NormalizedFloatBitmap(scaled.astype(">f4").tobytes())

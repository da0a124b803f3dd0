"""Image byte decoding.

This module decodes encoded image files into packed RGB pixel buffers.
Any format Pillow can identify is accepted and converted to RGB.
"""

from __future__ import annotations

import io

import numpy as np
from PIL import Image, UnidentifiedImageError

from core.types import DecodedImage


def decode_image(data: bytes) -> DecodedImage:
    """Decode image file bytes into a pixel buffer.

    Args:
        data: Raw file contents.

    Returns:
        Decoded image with packed ``0xRRGGBB`` pixels, row-major.

    Raises:
        ValueError: If the bytes are empty or not a decodable image.
    """
    if not data:
        raise ValueError("empty image stream")
    try:
        with Image.open(io.BytesIO(data)) as opened:
            rgb_image = opened.convert("RGB")
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as error:
        raise ValueError(f"not a decodable image ({error})") from error
    channels = np.asarray(rgb_image, dtype=np.uint32)
    packed = (channels[..., 0] << 16) | (channels[..., 1] << 8) | channels[..., 2]
    return DecodedImage(
        width=rgb_image.width,
        height=rgb_image.height,
        pixels=packed.reshape(-1),
    )

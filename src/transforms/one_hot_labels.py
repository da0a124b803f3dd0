"""One-hot label vectors.

This module builds the directory label column from descriptor indexes
and packs it into bytes for binary destination columns.
"""

from __future__ import annotations

from typing import Sequence

from core.types import ImageDescriptor


def one_hot_vector(descriptor: ImageDescriptor) -> list[int]:
    """Return the label vector with a single 1 at the descriptor index."""
    vector = [0] * descriptor.label_count
    vector[descriptor.label_index] = 1
    return vector


def pack_label_bytes(vectors: Sequence[Sequence[int]]) -> bytes:
    """Concatenate label vectors row-major, one byte per entry."""
    return bytes(entry & 0xFF for vector in vectors for entry in vector)


def label_index(vector: Sequence[int]) -> int:
    """Recover the label index of a one-hot vector.

    Raises:
        ValueError: If the vector does not hold exactly one non-zero entry.
    """
    hot_positions = [position for position, entry in enumerate(vector) if entry]
    if len(hot_positions) != 1:
        raise ValueError(f"expected exactly one hot entry, found {len(hot_positions)}")
    return hot_positions[0]

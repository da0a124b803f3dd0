"""Data-source descriptor parsing.

This module turns the planner's descriptor string into an ordered
fragment request. The format is ``prefix|path,index/total|...``.
"""

from __future__ import annotations

from core.constants import (
    DESCRIPTOR_COUNT_SEPARATOR,
    DESCRIPTOR_ENTRY_SEPARATOR,
    DESCRIPTOR_LABEL_SEPARATOR,
)
from core.errors import MalformedDescriptorError
from core.types import FragmentRequest, ImageDescriptor


def parse_fragment_descriptor(data_source: str) -> FragmentRequest:
    """Parse a data-source descriptor string.

    Args:
        data_source: Descriptor such as
            ``s3://bucket/images|cats/1.png,0/2|dogs/2.png,1/2``.

    Returns:
        Fragment request with full-URI descriptors in input order.

    Raises:
        MalformedDescriptorError: If any entry violates the grammar or the
            label counts disagree.
    """
    prefix, *entries = data_source.split(DESCRIPTOR_ENTRY_SEPARATOR)
    descriptors = tuple(
        _parse_entry(prefix, entry, position) for position, entry in enumerate(entries, 1)
    )
    _ensure_consistent_label_count(descriptors)
    return FragmentRequest(prefix=prefix, descriptors=descriptors)


def _parse_entry(prefix: str, entry: str, position: int) -> ImageDescriptor:
    """Parse one ``path,index/total`` entry.

    Args:
        prefix: Path prefix joined in front of the relative path.
        entry: Raw entry text.
        position: One-based entry position for error messages.

    Returns:
        Parsed descriptor.

    Raises:
        MalformedDescriptorError: If the entry is malformed.
    """
    relative_path, separator, label_text = entry.rpartition(DESCRIPTOR_LABEL_SEPARATOR)
    if not separator or not relative_path:
        _raise_malformed(entry, position, "expected 'path,index/total'")
    index_text, separator, count_text = label_text.partition(DESCRIPTOR_COUNT_SEPARATOR)
    if not separator:
        _raise_malformed(entry, position, "expected label as 'index/total'")
    label_index = _parse_count(entry, position, index_text)
    label_count = _parse_count(entry, position, count_text)
    if label_index >= label_count:
        _raise_malformed(
            entry, position, f"label index {label_index} must be below total {label_count}"
        )
    return ImageDescriptor(
        path=f"{prefix}/{relative_path}",
        label_index=label_index,
        label_count=label_count,
    )


def _parse_count(entry: str, position: int, raw_value: str) -> int:
    """Parse a non-negative decimal label number."""
    if not (raw_value.isascii() and raw_value.isdigit()):
        _raise_malformed(entry, position, f"'{raw_value}' is not a non-negative integer")
    return int(raw_value)


def _ensure_consistent_label_count(descriptors: tuple[ImageDescriptor, ...]) -> None:
    """Require one label vector length across the whole request."""
    label_counts = {descriptor.label_count for descriptor in descriptors}
    if len(label_counts) > 1:
        raise MalformedDescriptorError(
            f"Descriptor label totals disagree: {sorted(label_counts)}. "
            "Every entry of one fragment must use the same label total."
        )


def _raise_malformed(entry: str, position: int, reason: str) -> None:
    """Raise a descriptor grammar error.

    Raises:
        MalformedDescriptorError: Always.
    """
    raise MalformedDescriptorError(
        f"Malformed descriptor entry {position} '{entry}': {reason}. "
        "Entries must look like 'path,index/total' with index < total."
    )

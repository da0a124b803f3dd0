"""Pixrow exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class PixrowError(Exception):
    """Base exception for all Pixrow failures."""


class PixrowConfigError(PixrowError):
    """Raised for invalid runtime configuration or column types."""


class PixrowDependencyError(PixrowError):
    """Raised when an optional runtime dependency is missing."""


class PixrowIngestError(PixrowError):
    """Raised for descriptor parsing, filesystem and decode failures."""


class PixrowEncodeError(PixrowError):
    """Raised for image encoding and streaming failures."""


class PixrowStoreError(PixrowError):
    """Raised when a row cannot be written."""


class MalformedDescriptorError(PixrowIngestError):
    """Raised when a data-source descriptor violates its grammar."""


class FilesystemUnavailableError(PixrowIngestError):
    """Raised when the backing filesystem handle cannot be created."""


class ImageDecodeFailedError(PixrowIngestError):
    """Raised when a file cannot be read or decoded as an image."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            f"Unable to read image data in {path}: {reason}. "
            "Remove or replace the file and retry the scan."
        )
        self.path = path


class EmptyFragmentError(PixrowIngestError):
    """Raised when a fragment carries no image descriptors."""


class NoDecodedImagesError(PixrowIngestError):
    """Raised when the first fetch chunk of a fragment yields nothing."""


class EncodeFailedError(PixrowEncodeError):
    """Raised when an individual encode task fails."""

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"Failed to encode image {index}: {reason}.")
        self.index = index


class DimensionMismatchError(PixrowEncodeError):
    """Raised when an image size differs from the first image of its fragment."""

    def __init__(self, path: str, expected: tuple[int, int], actual: tuple[int, int]) -> None:
        super().__init__(
            f"Image {path} is {actual[0]}x{actual[1]} but the fragment expects "
            f"{expected[0]}x{expected[1]}. Group images of equal size into one fragment."
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class StreamExhaustedError(PixrowEncodeError):
    """Raised when an exhausted image stream is pulled again."""

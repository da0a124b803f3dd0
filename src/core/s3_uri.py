"""S3 URI parsing helpers.

This module centralizes S3 URI parsing for the filesystem layer.
It keeps URI validation behavior consistent across the codebase.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import FilesystemUnavailableError, ImageDecodeFailedError


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 location model."""

    bucket: str
    key: str


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 object URI.

    Args:
        uri: URI in format ``s3://bucket/key``.

    Returns:
        Parsed bucket and key pair.

    Raises:
        ImageDecodeFailedError: If the URI has no bucket or key.
    """
    stripped_uri = uri.removeprefix("s3://")
    bucket, _, key = stripped_uri.partition("/")
    if not bucket or not key:
        raise ImageDecodeFailedError(uri, "expected s3://bucket/key")
    return S3Location(bucket=bucket, key=key)


def parse_s3_bucket(uri: str) -> str:
    """Return the bucket of an S3 URI.

    Raises:
        FilesystemUnavailableError: If the URI names no bucket.
    """
    bucket = uri.removeprefix("s3://").partition("/")[0]
    if not bucket:
        raise FilesystemUnavailableError(
            f"Invalid S3 URI '{uri}': expected s3://bucket/key. Provide a bucket name."
        )
    return bucket

"""Filesystem handles for image reads.

This module resolves a shared read-only handle from a URI scheme.
Local paths and ``s3://`` objects are supported behind one contract.
"""

from __future__ import annotations

from contextlib import closing
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import urlparse

from core.config import PixrowConfig
from core.constants import LOCAL_SCHEMES, S3_SCHEME
from core.errors import FilesystemUnavailableError, PixrowDependencyError
from core.s3_uri import parse_s3_bucket, parse_s3_uri


class ImageFileSystem(Protocol):
    """Read-only handle shared by concurrent fetch workers."""

    def read_bytes(self, uri: str) -> bytes:
        """Open a stream for the URI and read it fully."""
        ...


class LocalFileSystem:
    """Local disk handle for plain paths and ``file://`` URIs."""

    def read_bytes(self, uri: str) -> bytes:
        """Read a local file.

        Args:
            uri: Plain path or ``file://`` URI.

        Returns:
            File contents.

        Raises:
            OSError: If the file cannot be read.
        """
        with Path(uri_path(uri)).open("rb") as stream:
            return stream.read()


class S3FileSystem:
    """S3 handle wrapping one thread-safe boto3 client."""

    def __init__(self, s3_client: Any) -> None:
        self._s3_client = s3_client

    def read_bytes(self, uri: str) -> bytes:
        """Download an S3 object.

        Args:
            uri: ``s3://bucket/key`` URI.

        Returns:
            Object body.

        Raises:
            OSError: If the object cannot be fetched.
        """
        from botocore.exceptions import BotoCoreError, ClientError

        location = parse_s3_uri(uri)
        try:
            response = self._s3_client.get_object(Bucket=location.bucket, Key=location.key)
            with closing(response["Body"]) as stream:
                return stream.read()
        except (BotoCoreError, ClientError) as error:
            raise OSError(f"S3 read failed for {uri}: {error}") from error


def open_filesystem(uri: str, config: PixrowConfig) -> ImageFileSystem:
    """Create the filesystem handle for a URI scheme.

    Args:
        uri: Any image URI of the fragment, used for scheme detection.
        config: Runtime configuration with S3 session defaults.

    Returns:
        Filesystem handle.

    Raises:
        FilesystemUnavailableError: If the scheme is unsupported or the
            client cannot be created.
    """
    scheme = urlparse(uri).scheme.lower()
    if scheme in LOCAL_SCHEMES:
        return LocalFileSystem()
    if scheme == S3_SCHEME:
        parse_s3_bucket(uri)
        return S3FileSystem(_create_s3_client(config))
    raise FilesystemUnavailableError(
        f"Unsupported filesystem scheme '{scheme}' in {uri}. "
        "Use a local path, file:// or s3:// URI."
    )


def uri_path(uri: str) -> str:
    """Return the path component of a URI; plain paths are returned unchanged."""
    parsed = urlparse(uri)
    if not parsed.scheme:
        return uri
    return parsed.path


def _create_s3_client(config: PixrowConfig) -> Any:
    """Create a boto3 S3 client.

    Args:
        config: Runtime config containing optional profile/region.

    Returns:
        Boto3 S3 client.

    Raises:
        PixrowDependencyError: If boto3 is missing.
        FilesystemUnavailableError: If the session cannot be created.
    """
    try:
        import boto3
        from botocore.exceptions import BotoCoreError
    except ImportError as error:
        raise PixrowDependencyError(
            "S3 support requires boto3, but it is not installed. "
            "Install boto3 to read images from s3:// sources."
        ) from error
    try:
        session = boto3.session.Session(**_build_boto3_session_kwargs(config))
        return session.client("s3")
    except BotoCoreError as error:
        raise FilesystemUnavailableError(
            f"Failed to create S3 client: {error}. "
            "Check PIXROW_S3_PROFILE and PIXROW_S3_REGION."
        ) from error


def _build_boto3_session_kwargs(config: PixrowConfig) -> dict[str, str]:
    """Build boto3 Session kwargs from config."""
    kwargs: dict[str, str] = {}
    if config.s3_profile:
        kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        kwargs["region_name"] = config.s3_region
    return kwargs

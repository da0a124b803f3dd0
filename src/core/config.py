"""Runtime configuration model for Pixrow.

This module owns all environment variable and request option parsing.
Other modules consume a typed config object instead of raw option reads.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
from typing import Mapping

from core.constants import (
    ACCESSOR_THREADS_OPTION,
    DEFAULT_ACCESSOR_THREADS,
    DEFAULT_NORMALIZE,
    NORMALIZE_OPTION,
)
from core.errors import PixrowConfigError


@dataclass(frozen=True)
class PixrowConfig:
    """Validated runtime configuration.

    Attributes:
        accessor_threads: Worker count for fetch and encode chunks.
        normalize: Whether pixel data is emitted as normalized floats.
        s3_region: Optional default AWS region for S3 reads.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    accessor_threads: int = DEFAULT_ACCESSOR_THREADS
    normalize: bool = DEFAULT_NORMALIZE
    s3_region: str | None = None
    s3_profile: str | None = None

    @classmethod
    def from_env(cls) -> "PixrowConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            PixrowConfigError: If environment values are invalid.
        """
        threads_value = os.getenv("PIXROW_ACCESSOR_THREADS", str(DEFAULT_ACCESSOR_THREADS))
        normalize_value = os.getenv("PIXROW_NORMALIZE", str(DEFAULT_NORMALIZE))
        return cls(
            accessor_threads=_parse_accessor_threads(threads_value, "PIXROW_ACCESSOR_THREADS"),
            normalize=_parse_normalize(normalize_value),
            s3_region=os.getenv("PIXROW_S3_REGION"),
            s3_profile=os.getenv("PIXROW_S3_PROFILE"),
        )

    def with_options(self, options: Mapping[str, str]) -> "PixrowConfig":
        """Overlay per-request options onto this config.

        Option keys are matched case-insensitively. Unknown keys are ignored
        so planner-owned options such as FILES_PER_FRAGMENT pass through.

        Args:
            options: Raw request options.

        Returns:
            A new validated config object.

        Raises:
            PixrowConfigError: If an option value is invalid.
        """
        normalized_options = {key.upper(): value for key, value in options.items()}
        config = self
        if ACCESSOR_THREADS_OPTION in normalized_options:
            threads = _parse_accessor_threads(
                normalized_options[ACCESSOR_THREADS_OPTION], ACCESSOR_THREADS_OPTION
            )
            config = replace(config, accessor_threads=threads)
        if NORMALIZE_OPTION in normalized_options:
            config = replace(config, normalize=_parse_normalize(normalized_options[NORMALIZE_OPTION]))
        return config


def _parse_accessor_threads(raw_value: str, option_name: str) -> int:
    """Parse a worker count option.

    Args:
        raw_value: Raw option string.
        option_name: Option name used in error messages.

    Returns:
        Parsed positive worker count.

    Raises:
        PixrowConfigError: If value is not a positive integer.
    """
    try:
        threads = int(raw_value)
    except ValueError as error:
        raise PixrowConfigError(
            f"Invalid {option_name} value: expected integer, got '{raw_value}'. "
            f"Set {option_name} to a positive number."
        ) from error
    if threads < 1:
        raise PixrowConfigError(
            f"Invalid {option_name} value: expected at least 1, got {threads}. "
            f"Set {option_name} to a positive number."
        )
    return threads


def _parse_normalize(raw_value: str) -> bool:
    """Interpret a boolean flag; only a case-insensitive 'true' enables it."""
    return raw_value.strip().lower() == "true"

"""Core constants used across Pixrow modules.

This module centralizes option names, defaults and format constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

ACCESSOR_THREADS_OPTION = "ACCESSOR_THREADS"
NORMALIZE_OPTION = "NORMALIZE"
FILES_PER_FRAGMENT_OPTION = "FILES_PER_FRAGMENT"
DEFAULT_ACCESSOR_THREADS = 1
DEFAULT_NORMALIZE = False
DESCRIPTOR_ENTRY_SEPARATOR = "|"
DESCRIPTOR_LABEL_SEPARATOR = ","
DESCRIPTOR_COUNT_SEPARATOR = "/"
INTENSITY_LEVELS = 256
MAX_INTENSITY = 255.0
NUM_CHANNELS = 3
LOCAL_SCHEMES = ("", "file")
S3_SCHEME = "s3"
DEFAULT_COLUMN_TYPES = ("TEXT[]", "TEXT[]", "TEXT[]", "INT[]", "INT[]", "INT[]")
COLUMN_NAMES = ("fullpaths", "names", "directories", "one_hot_encodings", "dimensions", "images")

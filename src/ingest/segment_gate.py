"""Fragment ownership for parallel scan workers.

Every worker of a parallel scan sees the same split metadata. Only the
worker assigned the first split of a file group reads the fragment.
"""

from __future__ import annotations

from core.types import FileSplit


def is_working_segment(split: FileSplit) -> bool:
    """Return whether this worker owns the fragment of the split."""
    return split.start == 0

"""
Mode Selector Module - Direct vs streaming access decision

A file is streamed (indexed, read by offset) when it is larger than the
configured threshold, unless the caller forces a mode.
"""
import os
from typing import Optional, Union

from jsonlogs.errors import IOFailure

DEFAULT_THRESHOLD_MB = 10

StreamOverride = Optional[Union[bool, str]]


def get_file_size_mb(path) -> float:
    """
    Get file size in MB

    Raises:
        IOFailure: If the file cannot be stat'd
    """
    try:
        return os.stat(path).st_size / (1024 * 1024)
    except OSError as e:
        raise IOFailure(path, f"Cannot stat file: {e.strerror or e}") from e


def should_stream(path, size_threshold_mb: float = DEFAULT_THRESHOLD_MB,
                  override: StreamOverride = "auto") -> bool:
    """
    Decide whether a file should be opened in streaming mode

    Args:
        path: Path to the file
        size_threshold_mb: Files strictly larger than this are streamed
        override: True/False forces the mode; "auto" or None compares the size

    Returns:
        True for streaming mode, False for direct mode
    """
    if override is True or override is False:
        return override
    if override not in (None, "auto"):
        raise ValueError(f"Invalid streaming override: {override!r}")

    return get_file_size_mb(path) > size_threshold_mb

"""
Error types raised by the line-index engine

Parse failures are not exceptions: they travel as Record objects
with ``ok == False`` (see jsonlogs.record.codec).
"""
from pathlib import Path
from typing import Union


class JsonLogsError(Exception):
    pass


class IOFailure(JsonLogsError):
    """A file could not be opened, stat'd or read"""

    def __init__(self, path: Union[str, Path], message: str):
        self.path = str(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")


class StalenessMismatch(JsonLogsError):
    """The file on disk is no longer a pure append of the indexed content"""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: index is stale ({reason})")

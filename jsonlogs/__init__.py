"""
jsonlogs - streaming line-index engine for JSONL log files

This package provides the data layer of a JSONL log viewer:
- Byte offset line index with incremental updates for growing files
- Seek based range reads and lazy iteration
- Bounded LRU cache of parsed records
- Direct (in-memory) or streaming (indexed) access chosen per file
- Chunked visible window that follows the cursor
- Tail following and file change watching

Package Structure:
- record: Line parsing and field access (Record, parse, get_field, flatten)
- stream: Line index and windowed reader (IndexRegistry, read_range, iter_range)
- cache: Parse cache (ParseCache)
- source: Opened files and mode selection (Workspace, SourceHandle)
- tail: Tail polling and file watching (TailFollower, FileChangeWatcher)
- analysis: Search, navigation and sampling consumers
"""
from .config import JsonLogsConfig, load_config
from .errors import IOFailure, JsonLogsError, StalenessMismatch
from .source import SourceHandle, Workspace, should_stream

__all__ = [
    'IOFailure',
    'JsonLogsConfig',
    'JsonLogsError',
    'SourceHandle',
    'StalenessMismatch',
    'Workspace',
    'load_config',
    'should_stream',
]

"""
Source package - opening log files in direct or streaming mode

Package Structure:
- handle: Mode transparent access to an opened file (SourceHandle, Workspace)
- chunk_loader: Visible window management for streaming mode (ChunkLoader)
- mode: Direct vs streaming decision (should_stream)
"""
from .chunk_loader import ChunkLoader
from .handle import SourceHandle, Workspace
from .mode import get_file_size_mb, should_stream

__all__ = [
    'ChunkLoader',
    'SourceHandle',
    'Workspace',
    'get_file_size_mb',
    'should_stream',
]

"""
Stream package - indexed, seek based access to large line oriented files

Package Structure:
- line_index: Byte offset index and per-path registry (LineIndex, IndexRegistry)
- reader: Range reads and lazy iteration over an index (read_range, iter_range)
"""
from .line_index import FileSignature, IndexRegistry, LineIndex
from .reader import clamp_range, iter_range, read_one, read_range

__all__ = [
    'FileSignature',
    'IndexRegistry',
    'LineIndex',
    'clamp_range',
    'iter_range',
    'read_one',
    'read_range',
]

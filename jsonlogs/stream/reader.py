"""
Windowed Reader Module - Seek based access to indexed line ranges

Handles:
- Reading arbitrary line ranges without scanning the file
- Range clamping to the indexed line count
- Lazy forward iteration for search/sampling consumers
"""
from typing import Generator, List, Optional, Tuple

from jsonlogs.errors import IOFailure

from .line_index import LineIndex, PathLike

ENCODING = 'utf-8'


def _decode(raw: bytes) -> str:
    if raw.endswith(b'\n'):
        raw = raw[:-1]
    if raw.endswith(b'\r'):
        raw = raw[:-1]
    return raw.decode(ENCODING, errors='ignore')


def clamp_range(total_lines: int, start_line: int, end_line: int) -> Tuple[int, int]:
    """Clamp a 1-based inclusive range to ``[1, total_lines]``"""
    start_line = max(1, min(start_line, total_lines))
    end_line = max(start_line, min(end_line, total_lines))
    return start_line, end_line


def read_range(path: PathLike, index: LineIndex, start_line: int, end_line: int) -> List[str]:
    """
    Read a range of lines using the stored byte offsets

    Args:
        path: Path to the file
        index: LineIndex built for the file
        start_line: 1-based first line (clamped)
        end_line: 1-based last line, inclusive (clamped)

    Returns:
        Line contents without terminators; offsets past the end of the file read as ""

    Raises:
        IOFailure: If the file cannot be opened or read
    """
    if index.total_lines == 0:
        return []

    start_line, end_line = clamp_range(index.total_lines, start_line, end_line)

    try:
        with open(path, 'rb') as f:
            # Contiguous range: one seek, one read, split by known offsets
            base = index.offsets[start_line - 1]
            f.seek(base)
            block = f.read(index.offsets[end_line] - base)
    except OSError as e:
        raise IOFailure(path, f"Failed to read lines {start_line}-{end_line}: {e.strerror or e}") from e

    lines = []
    for line_num in range(start_line, end_line + 1):
        line_start, line_end = index.offsets[line_num - 1], index.offsets[line_num]
        lines.append(_decode(block[line_start - base:line_end - base]))
    return lines


def read_one(path: PathLike, index: LineIndex, line_num: int) -> Optional[str]:
    """Read a single line; None when the index holds no lines"""
    lines = read_range(path, index, line_num, line_num)
    return lines[0] if lines else None


def iter_range(path: PathLike, index: LineIndex, start_line: int = 1,
               end_line: Optional[int] = None) -> Generator[Tuple[int, str], None, None]:
    """
    Lazily yield ``(line_number, content)`` pairs over a range

    The file is opened on the first ``next()`` and closed when the
    generator is exhausted, closed, or garbage collected. Each call
    returns a fresh single-pass generator.

    Args:
        end_line: Last line, inclusive; None means end of file
    """
    total = index.total_lines
    if end_line is None:
        end_line = total
    start_line = max(1, start_line)
    end_line = min(end_line, total)
    if start_line > end_line:
        return

    try:
        f = open(path, 'rb')
    except OSError as e:
        raise IOFailure(path, f"Failed to open file: {e.strerror or e}") from e

    with f:
        f.seek(index.offsets[start_line - 1])
        for line_num in range(start_line, end_line + 1):
            try:
                raw = f.read(index.offsets[line_num] - index.offsets[line_num - 1])
            except OSError as e:
                raise IOFailure(path, f"Failed to read line {line_num}: {e.strerror or e}") from e
            yield line_num, _decode(raw)

"""
Line Index Module - Byte offset index for random access into large files

Handles:
- One-pass line offset scanning (\\n and \\r\\n terminated lines)
- Signature based staleness detection (mtime, size, inode)
- Incremental extension for append-only growth (tail mode)
- Per-path registry with explicit eviction
- Optional progress reporting during long scans
"""
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from jsonlogs.errors import IOFailure, StalenessMismatch
from jsonlogs.util import hash_region

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 1000
TAIL_WINDOW = 4096

ProgressCallback = Callable[[int, int], None]
PathLike = Union[str, Path]


@dataclass(frozen=True)
class FileSignature:
    """Identity of a file's content at scan time"""
    mtime_ns: int
    size: int
    inode: int = 0

    @classmethod
    def from_stat(cls, stat: os.stat_result) -> "FileSignature":
        return cls(
            mtime_ns=int(getattr(stat, "st_mtime_ns", int(stat.st_mtime * 1_000_000_000))),
            size=int(stat.st_size),
            inode=int(getattr(stat, "st_ino", 0)),
        )


@dataclass
class LineIndex:
    """
    Byte offsets of every line start in a file

    ``offsets[0]`` is 0 and ``offsets[i]`` is the byte just after the
    i-th line's terminator, so line ``n`` (1-based) spans
    ``offsets[n - 1]:offsets[n]``.
    """
    path: str
    offsets: List[int] = field(default_factory=lambda: [0])
    signature: FileSignature = FileSignature(0, 0, 0)
    partial_tail: bool = False  # last line has no terminator yet
    tail_digest: str = ""

    @property
    def total_lines(self) -> int:
        return len(self.offsets) - 1

    @property
    def end_offset(self) -> int:
        return self.offsets[-1]


def _stat(path: PathLike) -> os.stat_result:
    try:
        return os.stat(path)
    except OSError as e:
        raise IOFailure(path, f"Cannot stat file: {e.strerror or e}") from e


def _notify_progress(callback: Optional[ProgressCallback], lines: int,
                     position: int, size: int) -> None:
    if callback is None:
        return
    percent = int(position * 100 / size) if size else 100
    try:
        callback(lines, min(percent, 100))
    except Exception as e:
        logger.warning(f"Progress callback failed: {e}")


def _scan(handle, position: int, size: int,
          progress_callback: Optional[ProgressCallback] = None,
          lines_before: int = 0) -> Tuple[List[int], bool]:
    """
    Scan forward from ``position`` up to ``size`` bytes

    Returns:
        (offsets after each discovered line, whether the last line is unterminated)
    """
    handle.seek(position)
    offsets: List[int] = []
    partial = False

    for line in handle:
        # Never index past the size captured in the signature
        if position + len(line) > size:
            line = line[:size - position]
            if not line:
                break
        position += len(line)
        offsets.append(position)
        partial = not line.endswith(b'\n')

        if len(offsets) % PROGRESS_EVERY == 0:
            _notify_progress(progress_callback, lines_before + len(offsets), position, size)
        if position >= size:
            break

    _notify_progress(progress_callback, lines_before + len(offsets), position, size)
    return offsets, partial


def _tail_digest(handle, end_offset: int) -> str:
    start = max(0, end_offset - TAIL_WINDOW)
    return hash_region(handle, start, end_offset - start)


class IndexRegistry:
    """
    Owns one LineIndex per file path

    Builds for the same path are serialized: a caller that arrives while a
    build is running waits for it and then receives the freshly built index
    instead of scanning again.
    """

    def __init__(self):
        self._indexes: Dict[str, LineIndex] = {}
        self._path_locks: Dict[str, threading.RLock] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(path: PathLike) -> str:
        return os.path.abspath(os.fspath(path))

    def _path_lock(self, key: str) -> threading.RLock:
        with self._lock:
            lock = self._path_locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._path_locks[key] = lock
            return lock

    def _store(self, key: str, index: LineIndex) -> LineIndex:
        with self._lock:
            self._indexes[key] = index
        return index

    def get_cached_index(self, path: PathLike) -> Optional[LineIndex]:
        """Get the cached index without building or checking it"""
        with self._lock:
            return self._indexes.get(self._key(path))

    def build_index(self, path: PathLike,
                    progress_callback: Optional[ProgressCallback] = None,
                    force: bool = False) -> LineIndex:
        """
        Build (or reuse) the line index for a file

        Args:
            path: Path to the file
            progress_callback: Optional observer called with (lines_scanned, percent)
            force: Rescan even if the cached signature still matches

        Returns:
            LineIndex for the file

        Raises:
            IOFailure: If the file cannot be stat'd, opened or read
        """
        key = self._key(path)
        with self._path_lock(key):
            signature = FileSignature.from_stat(_stat(key))
            cached = self.get_cached_index(key)
            if cached is not None and not force and cached.signature == signature:
                return cached

            started = time.monotonic()
            try:
                with open(key, 'rb') as f:
                    offsets, partial = _scan(f, 0, signature.size, progress_callback)
                    digest = _tail_digest(f, offsets[-1] if offsets else 0)
            except OSError as e:
                raise IOFailure(key, f"Failed to index file: {e.strerror or e}") from e

            index = LineIndex(
                path=key,
                offsets=[0] + offsets,
                signature=signature,
                partial_tail=partial,
                tail_digest=digest,
            )
            logger.info(
                f"Indexed {index.total_lines} lines of {key} "
                f"in {time.monotonic() - started:.3f}s"
            )
            return self._store(key, index)

    def update_index(self, path: PathLike, existing: LineIndex,
                     progress_callback: Optional[ProgressCallback] = None) -> LineIndex:
        """
        Extend an index after the file grew by appending

        Scanning resumes at the last recorded offset, or at the start of
        the last line when that line was still unterminated.

        Raises:
            StalenessMismatch: If the file is not a pure append of the indexed content
            IOFailure: If the file cannot be stat'd, opened or read
        """
        key = self._key(path)
        with self._path_lock(key):
            signature = FileSignature.from_stat(_stat(key))
            previous = existing.signature
            if signature == previous:
                return self._store(key, existing)

            if signature.inode != previous.inode:
                raise StalenessMismatch(key, "file was replaced")
            if signature.size < previous.size:
                raise StalenessMismatch(key, "file was truncated")
            if signature.size == previous.size:
                raise StalenessMismatch(key, "file was rewritten in place")
            if signature.mtime_ns < previous.mtime_ns:
                raise StalenessMismatch(key, "modification time went backwards")

            kept = existing.offsets[:-1] if existing.partial_tail else existing.offsets
            resume_at = kept[-1]
            try:
                with open(key, 'rb') as f:
                    if _tail_digest(f, existing.end_offset) != existing.tail_digest:
                        raise StalenessMismatch(key, "indexed content changed")
                    new_offsets, partial = _scan(
                        f, resume_at, signature.size, progress_callback, len(kept) - 1
                    )
                    end = new_offsets[-1] if new_offsets else resume_at
                    digest = _tail_digest(f, end)
            except OSError as e:
                raise IOFailure(key, f"Failed to update index: {e.strerror or e}") from e

            index = LineIndex(
                path=key,
                offsets=kept + new_offsets,
                signature=signature,
                partial_tail=partial if new_offsets else False,
                tail_digest=digest,
            )
            logger.debug(
                f"Extended index of {key}: {existing.total_lines} -> {index.total_lines} lines"
            )
            return self._store(key, index)

    def refresh(self, path: PathLike,
                progress_callback: Optional[ProgressCallback] = None) -> LineIndex:
        """
        Bring the index in line with the file on disk

        Unchanged files return the cached index, appended files are
        extended, anything else is rebuilt from scratch.
        """
        key = self._key(path)
        with self._path_lock(key):
            cached = self.get_cached_index(key)
            if cached is None:
                return self.build_index(key, progress_callback)
            try:
                return self.update_index(key, cached, progress_callback)
            except StalenessMismatch as e:
                logger.info(f"Rebuilding index: {e}")
                return self.build_index(key, progress_callback, force=True)

    def get_total_lines(self, path: PathLike) -> int:
        """Total line count, building the index if needed"""
        index = self.get_cached_index(path)
        if index is None:
            index = self.build_index(path)
        return index.total_lines

    def is_modified(self, path: PathLike) -> bool:
        """
        Check if a file changed since it was indexed

        Returns:
            True if no index exists, the file is missing, or its signature differs
        """
        index = self.get_cached_index(path)
        if index is None:
            return True
        try:
            stat = os.stat(self._key(path))
        except OSError:
            return True
        return FileSignature.from_stat(stat) != index.signature

    def clear(self, path: Optional[PathLike] = None) -> None:
        """Drop the index for one path, or every index if no path is given"""
        with self._lock:
            if path is None:
                self._indexes.clear()
                self._path_locks.clear()
            else:
                key = self._key(path)
                self._indexes.pop(key, None)
                self._path_locks.pop(key, None)

    def __contains__(self, path: PathLike) -> bool:
        return self.get_cached_index(path) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._indexes)

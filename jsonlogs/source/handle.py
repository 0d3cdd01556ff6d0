"""
Source Handle Module - Mode transparent access to one opened log file

Handles:
- Choosing direct or streaming mode when a file is opened
- Falling back to direct mode when the index cannot be built
- Line range reads and lazy iteration in either mode
- Cached record parsing keyed by absolute line number
- Cursor driven window shifts in streaming mode
- Invalidation, re-checking and tail following after file changes
"""
import logging
import os
import threading
from typing import Callable, Dict, Generator, List, Optional, Tuple

from jsonlogs.cache.parse_cache import ParseCache
from jsonlogs.config import JsonLogsConfig, load_config
from jsonlogs.errors import IOFailure, JsonLogsError, StalenessMismatch
from jsonlogs.record.codec import Record, parse
from jsonlogs.stream.line_index import FileSignature, IndexRegistry, LineIndex, ProgressCallback
from jsonlogs.stream.reader import clamp_range, iter_range, read_range
from jsonlogs.tail.file_watch import FileChangeWatcher
from jsonlogs.tail.follower import TailFollower

from .chunk_loader import ChunkLoader, LineRange
from .mode import StreamOverride, should_stream

logger = logging.getLogger(__name__)


class SourceHandle:
    """
    One opened JSONL file

    In direct mode the whole file is held as a list of lines. In
    streaming mode lines are read through the shared IndexRegistry and a
    ChunkLoader keeps the visible window materialized.
    """

    def __init__(self, path, config: JsonLogsConfig, registry: IndexRegistry,
                 streaming: StreamOverride = "auto",
                 progress_callback: Optional[ProgressCallback] = None):
        self.path = os.path.abspath(os.fspath(path))
        self.config = config
        self.registry = registry
        self.cache = ParseCache(config.streaming.cache_size)
        self.chunks = ChunkLoader(
            self._read_indexed, self._indexed_total, config.streaming.chunk_size
        )

        self.streaming = False
        self.closed = False
        self._index: Optional[LineIndex] = None
        self._lines: List[str] = []
        self._signature: Optional[FileSignature] = None  # direct mode only
        self._needs_recheck = False
        self._lock = threading.RLock()

        self._tail = None
        self._watcher = None

        self._open(streaming, progress_callback)

    # Opening

    def _open(self, override: StreamOverride,
              progress_callback: Optional[ProgressCallback]) -> None:
        if should_stream(self.path, self.config.streaming.threshold_mb, override):
            try:
                self._index = self.registry.build_index(
                    self.path, progress_callback or self._progress_logger()
                )
                self.streaming = True
                self.chunks.activate(1)
                logger.info(
                    f"Streaming mode enabled for {self.path}: "
                    f"{self._index.total_lines} lines indexed"
                )
                return
            except IOFailure as e:
                logger.warning(f"Failed to build line index, falling back to direct mode: {e}")
                self.streaming = False
                self._index = None
                self.chunks.unload()

        self._lines, self._signature = self._read_all()

    def _progress_logger(self) -> Optional[ProgressCallback]:
        if not self.config.streaming.show_progress:
            return None

        def report(lines: int, percent: int) -> None:
            logger.info(f"Indexing {os.path.basename(self.path)}: {percent}% ({lines} lines)")
        return report

    def _read_all(self) -> Tuple[List[str], FileSignature]:
        try:
            with open(self.path, 'rb') as f:
                signature = FileSignature.from_stat(os.fstat(f.fileno()))
                data = f.read()
        except OSError as e:
            raise IOFailure(self.path, f"Failed to read file: {e.strerror or e}") from e

        text = data.decode('utf-8', errors='ignore')
        if not text:
            return [], signature
        lines = text.split('\n')
        if text.endswith('\n'):
            lines.pop()
        return [line[:-1] if line.endswith('\r') else line for line in lines], signature

    def _current_signature(self) -> FileSignature:
        try:
            return FileSignature.from_stat(os.stat(self.path))
        except OSError as e:
            raise IOFailure(self.path, f"Cannot stat file: {e.strerror or e}") from e

    # Streaming helpers used by the chunk loader

    def _read_indexed(self, start_line: int, end_line: int) -> List[str]:
        return read_range(self.path, self._index, start_line, end_line)

    def _indexed_total(self) -> int:
        return self._index.total_lines if self._index is not None else 0

    # Freshness

    def _check_open(self) -> None:
        if self.closed:
            raise JsonLogsError(f"{self.path}: source is closed")

    def _ensure_fresh(self) -> None:
        self._check_open()
        if self._needs_recheck:
            self.refresh()

    def refresh(self) -> Tuple[int, int]:
        """
        Re-check the file on disk and pick up any changes

        Appended lines extend the index (or direct content); any other
        change rebuilds it and drops every cached parse.

        Returns:
            (line count before, line count after)
        """
        with self._lock:
            self._check_open()
            if self.streaming:
                counts = self._refresh_streaming()
            else:
                counts = self._refresh_direct()
            # Only a successful re-check clears a pending one
            self._needs_recheck = False
            return counts

    def _refresh_streaming(self) -> Tuple[int, int]:
        previous = self._index
        try:
            index = self.registry.update_index(self.path, previous)
            if index is not previous and previous.partial_tail:
                # The unterminated last line may have been completed
                self.cache.invalidate_range(previous.total_lines, previous.total_lines)
        except StalenessMismatch as e:
            logger.info(f"Rebuilding index: {e}")
            index = self.registry.build_index(self.path, force=True)
            self.cache.clear()

        self._index = index
        if index is not previous:
            self.chunks.reload()
        return previous.total_lines, index.total_lines

    def _refresh_direct(self) -> Tuple[int, int]:
        previous = self._lines
        if self._current_signature() == self._signature:
            return len(previous), len(previous)

        lines, self._signature = self._read_all()
        if lines[:len(previous)] != previous:
            self.cache.clear()
        elif previous:
            self.cache.invalidate_range(len(previous), len(previous))
        self._lines = lines
        return len(previous), len(lines)

    # External interface

    def total_lines(self) -> int:
        with self._lock:
            self._ensure_fresh()
            if self.streaming:
                return self._index.total_lines
            return len(self._lines)

    def get_lines(self, start_line: int, end_line: int) -> List[str]:
        """
        Read an inclusive 1-based line range (clamped to the file)

        Raises:
            IOFailure: If the file cannot be read in streaming mode
        """
        with self._lock:
            self._ensure_fresh()
            if self.streaming:
                return read_range(self.path, self._index, start_line, end_line)
            if not self._lines:
                return []
            start_line, end_line = clamp_range(len(self._lines), start_line, end_line)
            return self._lines[start_line - 1:end_line]

    def get_line(self, line_num: int) -> Optional[str]:
        lines = self.get_lines(line_num, line_num)
        return lines[0] if lines else None

    def iter_lines(self, start_line: int = 1,
                   end_line: Optional[int] = None) -> Generator[Tuple[int, str], None, None]:
        """Lazily yield ``(line_number, content)`` from ``start_line`` to ``end_line`` or EOF"""
        with self._lock:
            self._ensure_fresh()
            if self.streaming:
                return iter_range(self.path, self._index, start_line, end_line)
            return self._iter_direct(list(self._lines), start_line, end_line)

    @staticmethod
    def _iter_direct(lines: List[str], start_line: int,
                     end_line: Optional[int]) -> Generator[Tuple[int, str], None, None]:
        end_line = len(lines) if end_line is None else min(end_line, len(lines))
        for line_num in range(max(1, start_line), end_line + 1):
            yield line_num, lines[line_num - 1]

    def record_for(self, line_num: int, content: str) -> Record:
        """Parse already-read content through the cache"""
        return self.cache.get_or_parse(line_num, content, lambda raw: parse(raw, line_num))

    def get_record(self, line_num: int) -> Optional[Record]:
        """Parsed record for an absolute line, or None outside the file"""
        with self._lock:
            self._ensure_fresh()
            if line_num < 1 or line_num > self.total_lines():
                return None
            content = None
            if self.streaming and self.chunks.loaded:
                start, end = self.chunks.visible_range
                if start <= line_num <= end:
                    content = self.chunks.line_at(line_num - start + 1)
            if content is None:
                content = self.get_line(line_num)
            return self.record_for(line_num, content or "")

    def notify_cursor(self, window_line: int) -> int:
        """
        Tell the loader where the cursor sits inside the visible window

        Returns:
            The cursor's window position after any window shift
            (unchanged in direct mode)
        """
        with self._lock:
            self._ensure_fresh()
            if not self.streaming:
                return window_line
            return self.chunks.on_cursor(window_line)

    def focus(self, line_num: int) -> int:
        """Make an absolute line visible; returns its window position"""
        with self._lock:
            self._ensure_fresh()
            if not self.streaming:
                return max(0, min(line_num, len(self._lines)))
            return self.chunks.center_on(line_num)

    def follow_end(self) -> int:
        """Make the last line visible; returns its window position"""
        with self._lock:
            self._ensure_fresh()
            if not self.streaming:
                return len(self._lines)
            return self.chunks.follow_end()

    @property
    def visible_range(self) -> Optional[LineRange]:
        if self.streaming:
            return self.chunks.visible_range
        return (1, len(self._lines)) if self._lines else None

    def visible_lines(self) -> List[str]:
        with self._lock:
            if self.streaming:
                return list(self.chunks.lines)
            return list(self._lines)

    def absolute_line(self, window_line: int) -> Optional[int]:
        if self.streaming:
            return self.chunks.absolute_line(window_line)
        return window_line

    def invalidate(self, line_range: Optional[LineRange] = None) -> None:
        """
        Forget cached parses after an external write

        Args:
            line_range: Inclusive range to drop; None drops everything
        """
        with self._lock:
            self._check_open()
            if line_range is None:
                self.cache.clear()
                # Direct content is re-read even if the signature looks unchanged
                self._signature = None
            else:
                self.cache.invalidate_range(*line_range)
            self._needs_recheck = True

    def mark_changed(self, event_type: str = "modified", path: Optional[str] = None) -> None:
        """File watcher callback: re-check the file on next access"""
        if event_type == "deleted":
            logger.warning(f"Watched file was deleted: {self.path}")
        with self._lock:
            self._needs_recheck = True

    # Tail mode and watching

    def start_tail(self, on_update: Optional[Callable[[int, int], None]] = None,
                   interval: Optional[float] = None):
        """Start following appended lines; returns the running TailFollower"""
        with self._lock:
            self._check_open()
            if self._tail is not None and self._tail.is_running:
                logger.warning("Tail mode already active")
                return self._tail
            self._tail = TailFollower(
                self,
                interval if interval is not None else self.config.tail_interval_seconds,
                on_update,
            )
        self._tail.start()
        return self._tail

    def stop_tail(self) -> None:
        tail = self._tail
        self._tail = None
        if tail is not None:
            tail.stop()

    @property
    def tailing(self) -> bool:
        return self._tail is not None and self._tail.is_running

    def watch(self):
        """Start a filesystem watcher that marks the source changed on writes"""
        with self._lock:
            self._check_open()
            if self._watcher is None:
                self._watcher = FileChangeWatcher(self.path, self.mark_changed)
                self._watcher.start()
            return self._watcher

    def unwatch(self) -> None:
        watcher = self._watcher
        self._watcher = None
        if watcher is not None:
            watcher.stop()

    def close(self) -> None:
        """Stop background work and release cached state"""
        if self.closed:
            return
        self.stop_tail()
        self.unwatch()
        with self._lock:
            self.closed = True
            self.cache.clear()
            self.chunks.unload()
            self._lines = []
            self._signature = None
            if self.streaming:
                self.registry.clear(self.path)
            self._index = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class Workspace:
    """
    Opens source handles that share one IndexRegistry and configuration

    Tests and embedders construct their own Workspace so registries
    never leak between them.
    """

    def __init__(self, config: Optional[JsonLogsConfig] = None,
                 registry: Optional[IndexRegistry] = None):
        self.config = config or load_config()
        self.registry = registry or IndexRegistry()
        self.sources: Dict[int, SourceHandle] = {}

    def open_source(self, path, streaming: StreamOverride = None,
                    progress_callback: Optional[ProgressCallback] = None) -> SourceHandle:
        """
        Open a file in the mode chosen by size or override

        Args:
            path: Path to the JSONL file
            streaming: True/False forces a mode; None uses the configured setting
            progress_callback: Optional (lines_scanned, percent) observer for index builds

        Raises:
            IOFailure: If the file can be neither indexed nor read
        """
        override = self.config.streaming.enabled if streaming is None else streaming
        source = SourceHandle(path, self.config, self.registry, override, progress_callback)
        if self.config.advanced.watch_changes:
            source.watch()
        self.sources[id(source)] = source
        return source

    def close(self, source: SourceHandle) -> None:
        source.close()
        self.sources.pop(id(source), None)

    def close_all(self) -> None:
        for source in list(self.sources.values()):
            source.close()
        self.sources.clear()

"""
Chunk Loader Module - Visible window management for streaming mode

Handles:
- Materializing a fixed-size window of lines around the access cursor
- Shifting the window when the cursor nears either edge
- Centering the window on a navigation/search target
- Keeping the focused absolute line stable across shifts
"""
import logging
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
EDGE_RATIO = 0.2

LineRange = Tuple[int, int]


class ChunkLoader:
    """
    Holds the currently materialized window of lines

    States are ``Unloaded`` (``visible_range is None``) and ``Loaded(range)``.
    Window positions passed in and returned are 1-based offsets inside
    the window; absolute positions are 1-based file line numbers.
    """

    def __init__(self, read_lines: Callable[[int, int], List[str]],
                 line_count: Callable[[], int],
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 edge_ratio: float = EDGE_RATIO):
        """
        Initialize chunk loader

        Args:
            read_lines: Returns the lines of an inclusive absolute range
            line_count: Returns the current total line count
            chunk_size: Window length in lines
            edge_ratio: Fraction of the window that counts as "near the edge"
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.read_lines = read_lines
        self.line_count = line_count
        self.chunk_size = chunk_size
        self.edge_ratio = edge_ratio

        self.visible_range: Optional[LineRange] = None
        self.lines: List[str] = []

    @property
    def loaded(self) -> bool:
        return self.visible_range is not None

    @property
    def edge_threshold(self) -> int:
        return int(self.chunk_size * self.edge_ratio)

    def _window_from(self, start_line: int, total: int) -> Optional[LineRange]:
        if total <= 0:
            return None
        start_line = max(1, min(start_line, total - self.chunk_size + 1))
        return start_line, min(total, start_line + self.chunk_size - 1)

    def _load(self, new_range: Optional[LineRange]) -> None:
        if new_range is None:
            self.unload()
            return
        # Read first so a failed read leaves the current window untouched
        lines = self.read_lines(*new_range)
        self.visible_range = new_range
        self.lines = lines
        logger.debug(f"Loaded chunk {new_range[0]}-{new_range[1]}")

    def activate(self, start_line: int = 1) -> Optional[LineRange]:
        """Load the window that starts at ``start_line`` (shifted back at end of file)"""
        self._load(self._window_from(start_line, self.line_count()))
        return self.visible_range

    def center_on(self, target_line: int) -> int:
        """
        Load a window centered on an absolute line

        Returns:
            Window position of ``target_line`` in the new window (0 if the file is empty)
        """
        total = self.line_count()
        target_line = max(1, min(target_line, total))
        self._load(self._window_from(target_line - self.chunk_size // 2, total))
        if not self.loaded:
            return 0
        return target_line - self.visible_range[0] + 1

    def on_cursor(self, window_line: int) -> int:
        """
        React to the cursor position inside the window

        Near the top edge with lines above, the window moves back; near
        the bottom edge with lines below, it moves forward. A move never
        exceeds one chunk and stops once the focused line is centered; the
        cap is deliberate, since a full chunk shift would push the focused
        line out of the window.

        Returns:
            The cursor's window position after any shift
        """
        if not self.loaded:
            return window_line

        start, end = self.visible_range
        window_line = max(1, min(window_line, end - start + 1))
        absolute = start + window_line - 1
        total = self.line_count()
        edge = self.edge_threshold
        centered = absolute - self.chunk_size // 2

        candidate = None
        if window_line <= edge and start > 1:
            candidate = self._window_from(max(start - self.chunk_size, centered), total)
        elif window_line >= self.chunk_size - edge and end < total:
            candidate = self._window_from(min(start + self.chunk_size, centered), total)

        if candidate is None or candidate == self.visible_range:
            return window_line

        self._load(candidate)
        return absolute - candidate[0] + 1

    def reload(self) -> Optional[LineRange]:
        """Re-read the current window, clamped to the current line count"""
        if not self.loaded:
            return None
        self._load(self._window_from(self.visible_range[0], self.line_count()))
        return self.visible_range

    def follow_end(self) -> int:
        """Move the window onto the last line; returns its window position"""
        total = self.line_count()
        self._load(self._window_from(total - self.chunk_size + 1, total))
        if not self.loaded:
            return 0
        return total - self.visible_range[0] + 1

    def absolute_line(self, window_line: int) -> Optional[int]:
        if not self.loaded:
            return None
        return self.visible_range[0] + window_line - 1

    def line_at(self, window_line: int) -> Optional[str]:
        if 1 <= window_line <= len(self.lines):
            return self.lines[window_line - 1]
        return None

    def unload(self) -> None:
        self.visible_range = None
        self.lines = []

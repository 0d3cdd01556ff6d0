"""
Parse Cache Module - Bounded LRU cache of parsed lines

Provides thread-safe caching for:
- Parsed records keyed by absolute line number
- Parse failures (so malformed lines are not re-parsed while scrolling)
- Range invalidation after the underlying file changes
- Hit/miss statistics
"""
import threading
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

DEFAULT_MAX_SIZE = 100

ParseFn = Callable[[str], Any]


class ParseCache:
    """Thread-safe least-recently-used cache of parsed lines"""

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        """
        Initialize cache

        Args:
            max_size: Maximum number of cached entries (default: 100)
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: "OrderedDict[int, Any]" = OrderedDict()  # oldest first
        self.hits = 0
        self.misses = 0
        self._lock = threading.Lock()

    def get_or_parse(self, key: int, raw_content: str, parse_fn: ParseFn) -> Any:
        """
        Return the cached value for ``key`` or parse and cache ``raw_content``

        A hit refreshes the entry's recency and does not call ``parse_fn``.
        The parse result is cached whatever it is, failures included.
        """
        with self._lock:
            if key in self._entries:
                self.hits += 1
                self._entries.move_to_end(key)
                return self._entries[key]
            self.misses += 1

        parsed = parse_fn(raw_content)

        with self._lock:
            # Another thread may have parsed the same line meanwhile
            if key in self._entries:
                self._entries.move_to_end(key)
                return self._entries[key]
            self._insert(key, parsed)
        return parsed

    def put(self, key: int, value: Any) -> None:
        """Cache a value, evicting the least recently used entry if full"""
        with self._lock:
            if key in self._entries:
                self._entries[key] = value
                self._entries.move_to_end(key)
            else:
                self._insert(key, value)

    def _insert(self, key: int, value: Any) -> None:
        while len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
        self._entries[key] = value

    def peek(self, key: int) -> Optional[Any]:
        """Get a cached value without touching recency or statistics"""
        with self._lock:
            return self._entries.get(key)

    def is_cached(self, key: int) -> bool:
        with self._lock:
            return key in self._entries

    def preload(self, lines: Iterable[Tuple[int, str]], parse_fn: ParseFn) -> None:
        """Parse and cache ``(line_number, content)`` pairs that are not cached yet"""
        for key, content in lines:
            if not self.is_cached(key):
                self.put(key, parse_fn(content))

    def invalidate_range(self, start: int, end: int) -> int:
        """
        Remove every entry whose key lies in ``[start, end]``

        Returns:
            Number of entries removed
        """
        with self._lock:
            stale = [key for key in self._entries if start <= key <= end]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def resize(self, new_max_size: int) -> None:
        """Change capacity; shrinking evicts the oldest entries immediately"""
        if new_max_size < 1:
            raise ValueError("max_size must be at least 1")
        with self._lock:
            self.max_size = new_max_size
            while len(self._entries) > new_max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        """Drop all entries and reset statistics"""
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics

        Returns:
            Dictionary with size, max_size, hits, misses and hit_rate (percent)
        """
        with self._lock:
            total = self.hits + self.misses
            return {
                'size': len(self._entries),
                'max_size': self.max_size,
                'hits': self.hits,
                'misses': self.misses,
                'hit_rate': (self.hits / total * 100) if total else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: int) -> bool:
        return self.is_cached(key)

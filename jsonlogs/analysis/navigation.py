"""
Navigation Module - Searching records through the line-access API

Handles:
- Wrap-around forward/backward search from a line
- Field value search (case-insensitive for strings)
- Error-level navigation using the configured level field
- Jumping to the first entry at or after a timestamp

All searches run over SourceHandle.iter_lines/get_lines, so they behave the
same in direct and streaming mode.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Generator, Optional, Tuple, Union

from jsonlogs.config import AnalysisConfig, NavigationConfig
from jsonlogs.record.codec import MISSING, Record, get_field, matches, parse_timestamp

FORWARD = "forward"
BACKWARD = "backward"
BACKWARD_BLOCK = 1000

Predicate = Callable[[Record], bool]


def _backward(source, start_line: int, end_line: int) -> Generator[Tuple[int, str], None, None]:
    # Lines end_line down to start_line, read in blocks
    upper = end_line
    while upper >= start_line:
        lower = max(start_line, upper - BACKWARD_BLOCK + 1)
        lines = source.get_lines(lower, upper)
        for offset in range(len(lines) - 1, -1, -1):
            yield lower + offset, lines[offset]
        upper = lower - 1


def _scan_order(source, from_line: int, total: int,
                direction: str) -> Generator[Tuple[int, str], None, None]:
    if direction == FORWARD:
        yield from source.iter_lines(from_line + 1, total)
        yield from source.iter_lines(1, from_line - 1)
    else:
        yield from _backward(source, 1, from_line - 1)
        yield from _backward(source, from_line + 1, total)


def find_next(source, from_line: int, predicate: Predicate,
              direction: str = FORWARD) -> Optional[int]:
    """
    Find the next line whose record satisfies ``predicate``

    The search starts after ``from_line``, wraps around the end (or the
    start when searching backward) and stops before reaching
    ``from_line`` again. Unparseable lines never match.

    Args:
        source: SourceHandle to search
        from_line: 1-based line the search starts from
        predicate: Called with each successfully parsed Record
        direction: "forward" or "backward"

    Returns:
        Matching line number, or None
    """
    if direction not in (FORWARD, BACKWARD):
        raise ValueError(f"Invalid direction: {direction!r}")

    total = source.total_lines()
    if total == 0:
        return None
    from_line = max(1, min(from_line, total))

    for line_num, content in _scan_order(source, from_line, total, direction):
        record = source.record_for(line_num, content)
        if record.ok and predicate(record):
            return line_num
    return None


def search_by_field(source, from_line: int, field: str, value: Any,
                    direction: str = FORWARD) -> Optional[int]:
    """Find the next record whose ``field`` equals ``value``"""
    return find_next(source, from_line, lambda record: matches(record, field, value), direction)


def is_error_record(record: Record, navigation: NavigationConfig) -> bool:
    """Check the configured level field against the configured error values"""
    level = get_field(record, navigation.error_field)
    if level is MISSING or not isinstance(level, str):
        return False
    return level.lower() in {value.lower() for value in navigation.error_values}


def next_error(source, from_line: int,
               navigation: Optional[NavigationConfig] = None) -> Optional[int]:
    navigation = navigation or source.config.navigation
    return find_next(source, from_line, lambda record: is_error_record(record, navigation), FORWARD)


def prev_error(source, from_line: int,
               navigation: Optional[NavigationConfig] = None) -> Optional[int]:
    navigation = navigation or source.config.navigation
    return find_next(source, from_line, lambda record: is_error_record(record, navigation), BACKWARD)


def resolve_timestamp(target: Union[str, datetime], analysis: AnalysisConfig) -> datetime:
    """
    Turn a user supplied time into a naive UTC datetime

    Raises:
        ValueError: If ``target`` is not a recognised timestamp
    """
    if isinstance(target, datetime):
        if target.tzinfo is not None:
            return target.astimezone(timezone.utc).replace(tzinfo=None)
        return target

    target_time = parse_timestamp(target, analysis.timestamp_formats)
    if target_time is None:
        raise ValueError(f"Invalid timestamp format: {target!r}")
    return target_time


def jump_to_timestamp(source, target: Union[str, datetime],
                      analysis: Optional[AnalysisConfig] = None) -> Optional[int]:
    """
    Find the first entry whose timestamp is at or after ``target``

    Raises:
        ValueError: If ``target`` is not a recognised timestamp
    """
    analysis = analysis or source.config.analysis
    target_time = resolve_timestamp(target, analysis)

    # Linear scan; timestamps are not assumed to be sorted
    for line_num, content in source.iter_lines(1):
        record = source.record_for(line_num, content)
        if not record.ok:
            continue
        entry_time = parse_timestamp(
            get_field(record, analysis.timestamp_field), analysis.timestamp_formats
        )
        if entry_time is not None and entry_time >= target_time:
            return line_num
    return None

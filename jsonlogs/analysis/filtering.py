"""
Filtering Module - Selecting matching entries from a whole file

Handles:
- Inclusive time range filters on the configured timestamp field
- Field value filters (case-insensitive for strings)
- Level filters on the configured level field

Filters read every line through SourceHandle.iter_lines, so direct and
streaming mode return the same matches. Lines are parsed outside the
handle's cache so one pass over the file does not evict the visible window.
"""
import logging
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple, Union

from jsonlogs.config import AnalysisConfig, NavigationConfig
from jsonlogs.record.codec import Record, get_field, matches, parse, parse_timestamp

from .navigation import resolve_timestamp

logger = logging.getLogger(__name__)

Match = Tuple[int, str]


def _collect(source, predicate: Callable[[Record], bool]) -> List[Match]:
    results = []
    for line_num, content in source.iter_lines(1):
        if not content.strip():
            continue
        record = parse(content, line_num)
        if record.ok and predicate(record):
            results.append((line_num, content))
    return results


def filter_by_time_range(source, from_time: Union[str, datetime], to_time: Union[str, datetime],
                         analysis: Optional[AnalysisConfig] = None) -> List[Match]:
    """
    Entries whose timestamp lies in ``[from_time, to_time]``

    Args:
        source: SourceHandle to filter
        from_time: Start of the range, inclusive
        to_time: End of the range, inclusive
        analysis: Timestamp field and formats (default: the source's config)

    Returns:
        ``(line_number, content)`` pairs in file order

    Raises:
        ValueError: If either bound is not a recognised timestamp
    """
    analysis = analysis or source.config.analysis
    start = resolve_timestamp(from_time, analysis)
    end = resolve_timestamp(to_time, analysis)
    if start > end:
        logger.warning(f"Empty time range: {from_time} is after {to_time}")
        return []

    def in_range(record: Record) -> bool:
        entry_time = parse_timestamp(
            get_field(record, analysis.timestamp_field), analysis.timestamp_formats
        )
        return entry_time is not None and start <= entry_time <= end

    return _collect(source, in_range)


def filter_by_field(source, field: str, value: Any) -> List[Match]:
    """Entries whose ``field`` (dotted path) equals ``value``"""
    return _collect(source, lambda record: matches(record, field, value))


def filter_by_level(source, level: str,
                    navigation: Optional[NavigationConfig] = None) -> List[Match]:
    """Entries whose configured level field equals ``level``"""
    navigation = navigation or source.config.navigation
    return filter_by_field(source, navigation.error_field, level)

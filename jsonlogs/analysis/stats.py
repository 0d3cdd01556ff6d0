"""
Statistics Module - Level, service, field and timestamp summaries

Direct mode counts every line. Streaming mode counts an evenly spaced
sample of ``streaming.stats_sample_size`` lines.
"""
import logging
from typing import Any, Dict, Optional

from jsonlogs.record.codec import MISSING, get_field, parse

from .sampling import sample_lines

logger = logging.getLogger(__name__)

UNKNOWN_LEVEL = "unknown"


def _empty_stats() -> Dict[str, Any]:
    return {
        'total_entries': 0,
        'parse_errors': 0,
        'levels': {},
        'services': {},
        'fields': {},
        'timestamps': {'first': None, 'last': None, 'count': 0},
        'sampled': False,
    }


def _count(counter: Dict[str, int], key) -> None:
    key = str(key)
    counter[key] = counter.get(key, 0) + 1


def analyze(source, sample_size: Optional[int] = None) -> Dict[str, Any]:
    """
    Summarize the records of a source

    Args:
        source: SourceHandle to analyze
        sample_size: Lines to sample in streaming mode
            (default: ``streaming.stats_sample_size``)

    Returns:
        Dictionary with total_entries, parse_errors, per-level, per-service
        and per-field counts, the first/last timestamp seen and whether
        the result was sampled
    """
    config = source.config
    stats = _empty_stats()

    if source.streaming:
        size = sample_size or config.streaming.stats_sample_size
        if config.streaming.show_progress:
            logger.info(f"Analyzing {source.total_lines()} lines of {source.path} (sampling {size})")
        lines = sample_lines(source, size)
        stats['sampled'] = source.total_lines() // size > 1
    else:
        lines = source.iter_lines(1)

    for line_num, content in lines:
        if not content.strip():
            continue
        record = parse(content, line_num)
        if not record.ok:
            stats['parse_errors'] += 1
            continue

        stats['total_entries'] += 1

        level = get_field(record, config.navigation.error_field)
        _count(stats['levels'], UNKNOWN_LEVEL if level is MISSING or level is None else level)

        service = get_field(record, "service")
        if service is not MISSING and service is not None:
            _count(stats['services'], service)

        timestamp = get_field(record, config.analysis.timestamp_field)
        if timestamp is not MISSING and timestamp is not None:
            timestamps = stats['timestamps']
            timestamps['count'] += 1
            if timestamps['first'] is None:
                timestamps['first'] = timestamp
            timestamps['last'] = timestamp

        if isinstance(record.value, dict):
            for field in record.value:
                _count(stats['fields'], field)

    return stats

"""
Sampling Module - Index based sampling for whole-file consumers

Statistics and table column discovery read every line in direct mode but
only an evenly spaced sample in streaming mode.
"""
from typing import List, Optional, Tuple

from jsonlogs.record.codec import flatten, parse


def sample_lines(source, sample_size: int) -> List[Tuple[int, str]]:
    """
    Pick evenly spaced non-empty lines

    Every ``max(1, total // sample_size)``-th line is taken, starting at line 1.
    """
    if sample_size < 1:
        raise ValueError("sample_size must be at least 1")

    total = source.total_lines()
    step = max(1, total // sample_size)
    samples = []
    for line_num in range(1, total + 1, step):
        content = source.get_line(line_num)
        if content and content.strip():
            samples.append((line_num, content))
    return samples


def discover_columns(source, sample_size: Optional[int] = None) -> List[str]:
    """
    Collect every flattened key seen in the file, sorted

    Args:
        source: SourceHandle to scan
        sample_size: Lines to sample in streaming mode
            (default: ``streaming.table_sample_size``)
    """
    if source.streaming:
        lines = sample_lines(source, sample_size or source.config.streaming.table_sample_size)
    else:
        lines = source.iter_lines(1)

    columns = set()
    for line_num, content in lines:
        # Parsed outside the cache so a sampling pass does not evict hot lines
        record = parse(content, line_num)
        if record.ok:
            columns.update(flatten(record))
    return sorted(columns)

"""
Analysis package - consumers built on the line-access API

Package Structure:
- navigation: Wrap-around search, error and timestamp navigation
- filtering: Time range, field and level filters over the whole file
- sampling: Evenly spaced sampling and column discovery
- stats: Level, service, field and timestamp summaries
"""
from .filtering import filter_by_field, filter_by_level, filter_by_time_range
from .navigation import (
    find_next,
    is_error_record,
    jump_to_timestamp,
    next_error,
    prev_error,
    resolve_timestamp,
    search_by_field,
)
from .sampling import discover_columns, sample_lines
from .stats import analyze

__all__ = [
    'analyze',
    'discover_columns',
    'filter_by_field',
    'filter_by_level',
    'filter_by_time_range',
    'find_next',
    'is_error_record',
    'jump_to_timestamp',
    'next_error',
    'prev_error',
    'resolve_timestamp',
    'sample_lines',
    'search_by_field',
]

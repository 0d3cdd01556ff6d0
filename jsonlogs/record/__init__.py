"""
Record package - parsing JSONL lines into structured records
"""
from .codec import (
    EMPTY_LINE,
    MISSING,
    Record,
    flatten,
    get_field,
    matches,
    parse,
    parse_timestamp,
)

__all__ = [
    'EMPTY_LINE',
    'MISSING',
    'Record',
    'flatten',
    'get_field',
    'matches',
    'parse',
    'parse_timestamp',
]

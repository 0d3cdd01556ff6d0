"""
Cache package - bounded caches shared by the source handles
"""
from .parse_cache import DEFAULT_MAX_SIZE, ParseCache

__all__ = ['DEFAULT_MAX_SIZE', 'ParseCache']

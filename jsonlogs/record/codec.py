"""
Record Codec Module - JSONL line parsing and field access

Handles:
- Parsing one line of text into a Record (success or failure)
- Distinguishing empty lines from malformed JSON
- Dot/bracket path lookup into nested values
- Field matching for search predicates
- Flattening nested records into dotted paths
- Timestamp parsing for time-based navigation
"""
import json
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

EMPTY_LINE = "Empty line"
INVALID_JSON = "Invalid JSON"

ISO_FORMATS = [
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M:%S.%f',
]

_INDEX_RE = re.compile(r'\[(\d+)\]')
_SEGMENT_RE = re.compile(r'^(?P<key>[^\[\]]*)(?P<indexes>(?:\[\d+\])*)$')


class _Missing:
    """Sentinel for a field that does not exist"""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


@dataclass
class Record:
    """One parsed JSONL line, or the reason it could not be parsed"""
    raw: str
    value: Any = None
    error: Optional[str] = None
    line_number: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_empty(self) -> bool:
        return self.error == EMPTY_LINE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for export"""
        return {
            'line_number': self.line_number,
            'value': self.value,
            'error': self.error,
            'raw': self.raw,
        }


def parse(line: str, line_number: Optional[int] = None) -> Record:
    """
    Parse a single JSONL line

    Args:
        line: Raw line text (a trailing terminator is ignored)
        line_number: Optional 1-based line number to attach

    Returns:
        Record; ``record.ok`` is False for empty or malformed lines
    """
    raw = line.rstrip('\r\n') if line else ""
    if not raw.strip():
        return Record(raw=raw, error=EMPTY_LINE, line_number=line_number)

    try:
        value = json.loads(raw)
    except ValueError as e:
        return Record(raw=raw, error=f"{INVALID_JSON}: {e}", line_number=line_number)

    return Record(raw=raw, value=value, line_number=line_number)


def _split_path(path: str) -> List[Union[str, int]]:
    steps: List[Union[str, int]] = []
    for part in path.split('.'):
        match = _SEGMENT_RE.match(part)
        if not match:
            steps.append(part)
            continue
        if match.group('key'):
            steps.append(match.group('key'))
        steps.extend(int(i) for i in _INDEX_RE.findall(match.group('indexes')))
    return steps


def get_field(obj: Any, path: str) -> Any:
    """
    Walk a dotted path (``user.id``, ``user.tags[0]``) into a record or value

    Returns:
        The value found, or MISSING at the first segment that does not exist
    """
    current = obj.value if isinstance(obj, Record) else obj
    if isinstance(obj, Record) and not obj.ok:
        return MISSING

    for step in _split_path(path):
        if isinstance(step, int):
            if not isinstance(current, list) or step >= len(current):
                return MISSING
            current = current[step]
        else:
            if not isinstance(current, dict) or step not in current:
                return MISSING
            current = current[step]

    return current


def matches(record: Union[Record, Any], field_path: str, expected: Any) -> bool:
    """Check whether the field at ``field_path`` equals ``expected``"""
    field_value = get_field(record, field_path)
    if field_value is MISSING:
        return False

    # Case-insensitive string comparison
    if isinstance(field_value, str) and isinstance(expected, str):
        return field_value.lower() == expected.lower()

    if isinstance(field_value, bool) or isinstance(expected, bool):
        return type(field_value) is type(expected) and field_value == expected

    return field_value == expected


def flatten(record: Union[Record, Any]) -> Dict[str, Any]:
    """
    Flatten a nested record into ``{dotted.path: scalar}``

    Object keys join with ``.``; array elements append ``[index]``.
    Failed records and top-level scalars flatten to an empty mapping.
    """
    if isinstance(record, Record):
        if not record.ok:
            return {}
        record = record.value

    result: Dict[str, Any] = {}
    if isinstance(record, (dict, list)):
        _flatten_into(record, "", result)
    return result


def _flatten_into(obj: Any, prefix: str, result: Dict[str, Any]) -> None:
    if isinstance(obj, dict):
        for key, value in obj.items():
            _flatten_into(value, f"{prefix}.{key}" if prefix else str(key), result)
    elif isinstance(obj, list):
        for i, value in enumerate(obj):
            _flatten_into(value, f"{prefix}[{i}]", result)
    else:
        result[prefix] = obj


def parse_timestamp(value: Any, formats: Iterable[str] = ()) -> Optional[datetime]:
    """
    Parse a timestamp field value into a datetime

    ISO-8601 is tried first, then each strftime format in order.
    Timezone-aware results are converted to naive UTC so they compare
    with naive ones.
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        dt = datetime.fromisoformat(text.replace('Z', '+00:00'))
        if dt.tzinfo is not None:
            dt = dt.replace(tzinfo=None) - dt.utcoffset()
        return dt
    except ValueError:
        pass

    for fmt in list(ISO_FORMATS) + list(formats):
        if fmt == "iso8601":
            continue
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    return None

"""Turn lists of raw backend payloads into domain records, one item at a time.

Backends occasionally answer with junk: a string where an object belongs, a
"NA" duration, a null in a list. One bad item must not cost the caller the
whole result, so each item is converted on its own and dropped when it fails.
"""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# What a converter raises on a payload of the wrong shape
MALFORMED_PAYLOAD_ERRORS = (AttributeError, KeyError, IndexError, TypeError, ValueError)


def map_records(
    entries: Any,
    convert: Callable[[Any], T | None],
    what: str,
) -> list[T]:
    """Convert every entry, skipping empty, unmappable and malformed ones.

    Args:
        entries: The raw list from the backend (anything else yields [])
        convert: Builds one record, returns None for entries that have none
        what: Label for log messages ("Spotify track", "YouTube entry")

    Returns:
        The converted records in input order
    """
    if not isinstance(entries, list):
        if entries:
            logger.warning(f"Expected a list of {what} items, got {type(entries).__name__}")
        return []

    records: list[T] = []
    for entry in entries:
        # Private / deleted / local-only items come back as null
        if not entry:
            continue
        try:
            record = convert(entry)
        except MALFORMED_PAYLOAD_ERRORS as e:
            logger.warning(f"Skipping malformed {what}: {e}")
            continue
        if record is not None:
            records.append(record)
    return records


def section_items(response: Any, section: str) -> Any:
    """response[section]["items"] of a search envelope, None when absent or malformed."""
    if not isinstance(response, dict):
        return None
    body = response.get(section)
    if not isinstance(body, dict):
        return None
    return body.get("items")


def to_float(value: Any) -> float | None:
    """Numeric value as float, None for missing or non-numeric ("NA", "")."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any, default: int = 0) -> int:
    number = to_float(value)
    return int(number) if number is not None else default


__all__ = [
    "MALFORMED_PAYLOAD_ERRORS",
    "map_records",
    "section_items",
    "to_float",
    "to_int",
]

# fleetwatch/utils/json_parser.py
"""
Helpers for digging values out of telematics provider JSON payloads.
Tracker and zone objects nest the same field in different places depending
on which endpoint produced them (tracker/list vs tracker/get_states).
"""

from typing import Any, Optional


def get_nested(data: dict, *keys: str, default: Any = None) -> Any:
    """Safely navigate nested dict keys. Returns default if any key is missing."""
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return default if current is None else current


def first_present(data: dict, *paths: tuple, default: Any = None) -> Any:
    """Return the value at the first key path that exists and is not None."""
    for path in paths:
        value = get_nested(data, *path)
        if value is not None:
            return value
    return default


def to_float(value: Any) -> Optional[float]:
    """Coerce a provider number (often sent as a string) to float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None

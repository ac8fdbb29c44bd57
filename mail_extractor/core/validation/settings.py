"""Coercion of stored setting strings into typed values."""

from typing import Any

TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


def parse_bool(value: Any, default: bool = False) -> bool:
    """Read a boolean setting. Unknown spellings fall back to ``default``."""
    if isinstance(value, bool):
        return value
    if value is None:
        return default

    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return default


def parse_int(value: Any, default: int) -> int:
    """Read an integer setting. Blank or non-numeric values give ``default``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default

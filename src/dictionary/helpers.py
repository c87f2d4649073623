from __future__ import annotations

import re
from typing import Any, List, Mapping, Optional, Sequence, Tuple

_DIGITS = re.compile(r"(\d+)")


def ensure_mapping(value: Any, source: str) -> Mapping[str, Any]:
    """Guarantee archive documents behave like mappings."""
    if isinstance(value, Mapping):
        return value
    raise TypeError(f"Expected JSON object in {source}, got {type(value).__name__}")


def ensure_row(value: Any, source: str, min_length: int) -> Sequence[Any]:
    """Guarantee a bank entry is an array with at least ``min_length`` columns."""
    if not isinstance(value, list):
        raise TypeError(f"Expected array row in {source}, got {type(value).__name__}")
    if len(value) < min_length:
        raise ValueError(f"Row in {source} has {len(value)} columns, expected at least {min_length}")
    return value


def safe_sequence(value: Any) -> List[str]:
    """Return a list of strings even when the source is None or scalar."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


def to_int(value: Any, default: Optional[int] = None) -> int:
    """Robustly convert archive fields to ints."""
    if value is None or value == "":
        if default is not None:
            return default
        raise ValueError("Expected integer-like value, received None")
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Cannot convert {value!r} to int") from exc


def optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def natural_key(name: str) -> Tuple[Any, ...]:
    """Sort ``term_bank_10.json`` after ``term_bank_2.json``."""
    return tuple(int(part) if part.isdigit() else part for part in _DIGITS.split(name))


__all__ = ["ensure_mapping", "ensure_row", "natural_key", "optional_str", "safe_sequence", "to_int"]

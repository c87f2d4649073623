"""
Structural classification of decoded frequency payloads.

Dictionary authors disagree on how frequency data is laid out, so every decoded
payload is mapped onto one of a closed set of variants. The order of the checks
in :func:`classify_payload` is the priority order: the first structural match
wins and content is never inspected to break ties.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

Scalar = Union[str, int, float, bool]


@dataclass(frozen=True)
class BareNumber:
    value: Union[int, float]


@dataclass(frozen=True)
class BareString:
    text: str


@dataclass(frozen=True)
class NestedFrequencyObject:
    """``{"reading": ..., "frequency": {"value": ..., "displayValue": ...}}``"""

    container: Mapping[str, Any]
    frequency: Mapping[str, Any]


@dataclass(frozen=True)
class ScalarFrequencyObject:
    """``{"reading": ..., "frequency": 3500}``"""

    container: Mapping[str, Any]
    frequency: Scalar


@dataclass(frozen=True)
class ValueDisplayObject:
    """``{"value": 18000, "displayValue": "Common Word"}``"""

    container: Mapping[str, Any]


@dataclass(frozen=True)
class Unrecognized:
    reason: str


PayloadShape = Union[
    BareNumber,
    BareString,
    NestedFrequencyObject,
    ScalarFrequencyObject,
    ValueDisplayObject,
    Unrecognized,
]


def is_number(value: Any) -> bool:
    """JSON numbers only; booleans are excluded even though they subclass int."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def classify_payload(value: Any) -> PayloadShape:
    """Map a decoded payload onto its structural variant."""
    if is_number(value):
        return BareNumber(value)
    if isinstance(value, str):
        return BareString(value)
    if not isinstance(value, Mapping):
        return Unrecognized(f"unsupported top-level {_json_type(value)}")

    frequency = value.get("frequency")
    if isinstance(frequency, Mapping):
        return NestedFrequencyObject(value, frequency)
    if frequency is not None:
        if is_scalar(frequency):
            return ScalarFrequencyObject(value, frequency)
        return Unrecognized(f"'frequency' field is a {_json_type(frequency)}")
    if "value" in value or "displayValue" in value:
        return ValueDisplayObject(value)
    return Unrecognized("object has no frequency, value or displayValue field")


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


__all__ = [
    "BareNumber",
    "BareString",
    "NestedFrequencyObject",
    "PayloadShape",
    "ScalarFrequencyObject",
    "Unrecognized",
    "ValueDisplayObject",
    "classify_payload",
    "is_number",
    "is_scalar",
]

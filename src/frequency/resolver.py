"""Resolve raw per-dictionary frequency metadata into ranked observations."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

from .decoder import LENIENT_DECODER, DecoderOptions, PayloadDecodeError, decode_payload
from .records import FrequencyObservation, MetaKind, MetaRecordLike
from .shapes import (
    BareNumber,
    BareString,
    NestedFrequencyObject,
    PayloadShape,
    ScalarFrequencyObject,
    Unrecognized,
    ValueDisplayObject,
    classify_payload,
    is_number,
    is_scalar,
)

logger = logging.getLogger(__name__)

UNKNOWN_DISPLAY = "Unknown"
PREVIEW_CHARS = 120

_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")

Extraction = Tuple[str, str, Optional[int]]


def resolve(
    records: Iterable[MetaRecordLike],
    options: DecoderOptions = LENIENT_DECODER,
) -> List[FrequencyObservation]:
    """
    Turn raw meta records into frequency observations ordered by rank.

    Only frequency records are examined; every other kind is skipped. Records
    whose payload cannot be decoded or matches no known shape are dropped with
    a warning. The result is sorted by rank ascending, unranked entries last,
    keeping input order among equal ranks.
    """
    observations: List[FrequencyObservation] = []
    for record in records:
        if MetaKind.parse(record.kind) is not MetaKind.FREQUENCY:
            continue
        observation = parse_frequency(record, options)
        if observation is not None:
            observations.append(observation)
    return sorted(observations, key=_rank_key)


def parse_frequency(
    record: MetaRecordLike,
    options: DecoderOptions = LENIENT_DECODER,
) -> Optional[FrequencyObservation]:
    """Best-effort parse of a single record; None on any failure."""
    try:
        shape = classify_payload(decode_payload(record.payload, options))
        if isinstance(shape, Unrecognized):
            logger.warning(
                "Unrecognized frequency payload from dictionary %s (%s): %s",
                record.dictionary_id,
                shape.reason,
                _preview(record.payload),
            )
            return None
        reading, display_text, rank = _extract(shape)
    except (PayloadDecodeError, TypeError, ValueError, RecursionError) as exc:
        logger.warning(
            "Failed to parse frequency data from dictionary %s: %s (%s)",
            record.dictionary_id,
            _preview(record.payload),
            exc,
        )
        return None

    return FrequencyObservation(
        reading=reading,
        display_text=display_text,
        rank=rank,
        source_dictionary_id=record.dictionary_id,
    )


def group_by_dictionary(
    observations: Sequence[FrequencyObservation],
) -> Dict[Hashable, List[FrequencyObservation]]:
    """Group observations by source, keeping the resolved order inside and across groups."""
    groups: Dict[Hashable, List[FrequencyObservation]] = {}
    for observation in observations:
        groups.setdefault(observation.source_dictionary_id, []).append(observation)
    return groups


# ---------------------------------------------------------------------------
# Internal helpers


def _extract(shape: PayloadShape) -> Extraction:
    if isinstance(shape, BareNumber):
        rank = _as_integer(shape.value)
        return "", _scalar_text(shape.value), rank
    if isinstance(shape, BareString):
        return "", shape.text or UNKNOWN_DISPLAY, None
    if isinstance(shape, NestedFrequencyObject):
        display_text, rank = _value_display(shape.frequency)
        return _reading(shape.container), display_text, rank
    if isinstance(shape, ScalarFrequencyObject):
        rank = _as_integer(shape.frequency)
        display_text = str(rank) if rank is not None else _scalar_text(shape.frequency)
        return _reading(shape.container), display_text or UNKNOWN_DISPLAY, rank
    if isinstance(shape, ValueDisplayObject):
        display_text, rank = _value_display(shape.container)
        return _reading(shape.container), display_text, rank
    raise TypeError(f"Unhandled payload shape {type(shape).__name__}")


def _value_display(obj: Mapping[str, Any]) -> Tuple[str, Optional[int]]:
    """Prefer ``displayValue`` for display while always ranking by ``value``."""
    value = _optional_scalar(obj, "value")
    display = _optional_scalar(obj, "displayValue")

    rank = _as_integer(value) if value is not None else None
    label = _scalar_text(display) if display is not None else ""
    if label:
        return label, rank
    if rank is not None:
        return str(rank), rank
    return UNKNOWN_DISPLAY, rank


def _reading(obj: Mapping[str, Any]) -> str:
    raw = _optional_scalar(obj, "reading")
    return _scalar_text(raw) if raw is not None else ""


def _optional_scalar(obj: Mapping[str, Any], field: str) -> Any:
    raw = obj.get(field)
    if raw is not None and not is_scalar(raw):
        raise TypeError(f"'{field}' must be a scalar, got {type(raw).__name__}")
    return raw


def _as_integer(value: Any) -> Optional[int]:
    """Integers and integer-looking text rank; floats, booleans and words do not."""
    if is_number(value):
        return value if isinstance(value, int) else None
    if isinstance(value, str) and _INTEGER_TEXT.fullmatch(value):
        return int(value)
    return None


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _rank_key(observation: FrequencyObservation) -> Tuple[bool, int]:
    rank = observation.rank
    return (rank is None, rank if rank is not None else 0)


def _preview(payload: Any) -> str:
    text = payload if isinstance(payload, str) else repr(payload)
    if len(text) <= PREVIEW_CHARS:
        return text
    return text[:PREVIEW_CHARS] + "..."


__all__ = ["UNKNOWN_DISPLAY", "group_by_dictionary", "parse_frequency", "resolve"]

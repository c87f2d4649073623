"""Shared records exchanged between the persistence layer and the frequency engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Optional, Protocol, Union


class MetaKind(str, Enum):
    """Purpose tag of a meta record, stored with its on-disk abbreviation."""

    FREQUENCY = "freq"
    PITCH = "pitch"
    IPA = "ipa"

    @classmethod
    def parse(cls, value: Union[str, "MetaKind"]) -> Optional["MetaKind"]:
        """Return the kind for ``value`` or None when it is not a known kind."""
        if isinstance(value, MetaKind):
            return value
        token = str(value).strip().lower()
        if token == "frequency":
            return cls.FREQUENCY
        try:
            return cls(token)
        except ValueError:
            return None


class MetaRecordLike(Protocol):
    kind: Union[str, MetaKind]
    payload: str
    dictionary_id: Hashable


@dataclass(frozen=True)
class RawMetaRecord:
    """Opaque meta payload owned by a single dictionary."""

    dictionary_id: Hashable
    kind: Union[str, MetaKind]
    payload: str


@dataclass(frozen=True)
class FrequencyObservation:
    """Normalized frequency reading for display and ranking."""

    reading: str
    display_text: str
    rank: Optional[int]
    source_dictionary_id: Hashable


__all__ = ["FrequencyObservation", "MetaKind", "MetaRecordLike", "RawMetaRecord"]

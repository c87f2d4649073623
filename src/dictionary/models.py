from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from ..frequency.records import MetaKind, RawMetaRecord


@dataclass(frozen=True)
class Dictionary:
    """An installed dictionary package."""

    title: str
    revision: str
    version: int = 3
    author: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    attribution: Optional[str] = None
    is_enabled: bool = True
    priority: int = 0
    date_added: int = 0
    id: Optional[int] = None


@dataclass(frozen=True)
class DictionaryTag:
    dictionary_id: int
    name: str
    category: str
    order: int
    notes: str
    score: int


@dataclass(frozen=True)
class DictionaryTerm:
    dictionary_id: int
    expression: str
    reading: str
    definition_tags: Optional[str]
    rules: str
    score: int
    glossary: Tuple[Any, ...]
    sequence: Optional[int] = None
    term_tags: Optional[str] = None


@dataclass(frozen=True)
class DictionaryKanji:
    dictionary_id: int
    character: str
    onyomi: str
    kunyomi: str
    tags: Optional[str]
    meanings: Tuple[str, ...]
    stats: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class DictionaryTermMeta:
    """Per-term auxiliary payload (frequency, pitch accent, IPA) kept as JSON text."""

    dictionary_id: int
    expression: str
    mode: str
    data: str

    def as_raw_record(self) -> RawMetaRecord:
        return RawMetaRecord(dictionary_id=self.dictionary_id, kind=_kind(self.mode), payload=self.data)


@dataclass(frozen=True)
class DictionaryKanjiMeta:
    dictionary_id: int
    character: str
    mode: str
    data: str

    def as_raw_record(self) -> RawMetaRecord:
        return RawMetaRecord(dictionary_id=self.dictionary_id, kind=_kind(self.mode), payload=self.data)


def _kind(mode: str):
    return MetaKind.parse(mode) or mode


__all__ = [
    "Dictionary",
    "DictionaryKanji",
    "DictionaryKanjiMeta",
    "DictionaryTag",
    "DictionaryTerm",
    "DictionaryTermMeta",
]

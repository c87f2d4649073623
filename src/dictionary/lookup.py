"""Feed stored meta records of enabled dictionaries into the frequency resolver."""

from __future__ import annotations

from typing import Dict, List

from ..frequency import FrequencyObservation, resolve
from .repository import DictionaryRepository


def enabled_dictionary_ids(repository: DictionaryRepository) -> List[int]:
    """Ids of enabled dictionaries in priority order."""
    return [d.id for d in repository.get_all_dictionaries() if d.is_enabled and d.id is not None]


def dictionary_titles(repository: DictionaryRepository) -> Dict[int, str]:
    return {d.id: d.title for d in repository.get_all_dictionaries() if d.id is not None}


def lookup_term_frequencies(repository: DictionaryRepository, expression: str) -> List[FrequencyObservation]:
    """Ranked frequency observations for ``expression`` across enabled dictionaries."""
    metas = repository.get_term_meta_for_expression(expression, enabled_dictionary_ids(repository))
    return resolve(meta.as_raw_record() for meta in metas)


def lookup_kanji_frequencies(repository: DictionaryRepository, character: str) -> List[FrequencyObservation]:
    metas = repository.get_kanji_meta_for_character(character, enabled_dictionary_ids(repository))
    return resolve(meta.as_raw_record() for meta in metas)


__all__ = [
    "dictionary_titles",
    "enabled_dictionary_ids",
    "lookup_kanji_frequencies",
    "lookup_term_frequencies",
]

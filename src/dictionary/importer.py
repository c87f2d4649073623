"""High-level orchestration for fetching and installing dictionary archives."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import DEFAULT_ARCHIVE_ROOT
from .io import fetch_archive
from .models import (
    Dictionary,
    DictionaryKanji,
    DictionaryKanjiMeta,
    DictionaryTag,
    DictionaryTerm,
    DictionaryTermMeta,
)
from .parser import ParsedArchive, parse_archive
from .repository import DictionaryRepository


class DictionaryExistsError(ValueError):
    """Raised when an archive's title is already installed."""


@dataclass(frozen=True)
class ImportRequest:
    """Describe where an archive comes from and how to install it."""

    archive: Optional[Path] = None
    url: Optional[str] = None
    enabled: bool = True
    priority: int = 0
    replace: bool = False
    force_download: bool = False

    @classmethod
    def from_flags(
        cls,
        archive: Optional[Path],
        url: Optional[str],
        disabled: bool = False,
        priority: int = 0,
        replace: bool = False,
        force: bool = False,
    ) -> "ImportRequest":
        """Translate CLI flags into a normalized request."""
        if (archive is None) == (url is None):
            raise ValueError("Provide exactly one of an archive path or --url.")
        return cls(
            archive=archive,
            url=url,
            enabled=not disabled,
            priority=priority,
            replace=replace,
            force_download=force,
        )


def run_import(
    request: ImportRequest,
    repository: DictionaryRepository,
    archive_root: Path = DEFAULT_ARCHIVE_ROOT,
) -> int:
    """Download the archive if needed, then install it. Returns the dictionary id."""
    if request.url is not None:
        archive = fetch_archive(request.url, archive_root, force=request.force_download)
    elif request.archive is not None:
        archive = request.archive
    else:
        raise ValueError("ImportRequest needs either an archive path or a URL")
    return import_archive(
        archive,
        repository,
        enabled=request.enabled,
        priority=request.priority,
        replace=request.replace,
    )


def import_archive(
    archive: Path,
    repository: DictionaryRepository,
    *,
    enabled: bool = True,
    priority: int = 0,
    replace: bool = False,
) -> int:
    """
    Parse ``archive`` and write the dictionary with all of its banks.

    Parameters
    ----------
    archive:
        Path to a Yomitan-style zip.
    repository:
        Target store.
    enabled, priority:
        Initial dictionary settings.
    replace:
        Swap out an installed dictionary with the same title instead of failing.
        The old install is removed only after the new one is fully written.

    Returns
    -------
    int
        Id of the newly inserted dictionary.
    """
    parsed = parse_archive(archive)
    title = parsed.index["title"]

    existing = [d for d in repository.get_all_dictionaries() if d.title == title]
    if existing and not replace:
        raise DictionaryExistsError(f"Dictionary '{title}' is already installed (id={existing[0].id})")

    dictionary_id = repository.insert_dictionary(
        Dictionary(
            title=title,
            revision=parsed.index["revision"],
            version=parsed.index["version"],
            author=parsed.index["author"],
            url=parsed.index["url"],
            description=parsed.index["description"],
            attribution=parsed.index["attribution"],
            is_enabled=enabled,
            priority=priority,
        )
    )
    try:
        _write_banks(parsed, repository, dictionary_id)
    except Exception:
        repository.delete_dictionary(dictionary_id)
        raise

    for dictionary in existing:
        print(f"[import] Replacing '{title}' revision {dictionary.revision}")
        if dictionary.id is not None:
            repository.delete_dictionary(dictionary.id)

    print(
        f"[import] Installed '{title}' (id={dictionary_id}): {len(parsed.terms)} terms, "
        f"{len(parsed.kanji)} kanji, {len(parsed.term_meta)} term meta, {len(parsed.kanji_meta)} kanji meta"
    )
    return dictionary_id


def _write_banks(parsed: ParsedArchive, repository: DictionaryRepository, dictionary_id: int) -> None:
    repository.insert_tags(
        DictionaryTag(dictionary_id=dictionary_id, **row) for row in parsed.tags
    )
    repository.insert_terms(
        DictionaryTerm(
            dictionary_id=dictionary_id,
            expression=row["expression"],
            reading=row["reading"],
            definition_tags=row["definition_tags"],
            rules=row["rules"],
            score=row["score"],
            glossary=tuple(row["glossary"]),
            sequence=row["sequence"],
            term_tags=row["term_tags"],
        )
        for row in parsed.terms
    )
    repository.insert_kanji(
        DictionaryKanji(
            dictionary_id=dictionary_id,
            character=row["character"],
            onyomi=row["onyomi"],
            kunyomi=row["kunyomi"],
            tags=row["tags"],
            meanings=tuple(row["meanings"]),
            stats=row["stats"],
        )
        for row in parsed.kanji
    )
    repository.insert_term_meta(
        DictionaryTermMeta(dictionary_id=dictionary_id, expression=row["key"], mode=row["mode"], data=row["data"])
        for row in parsed.term_meta
    )
    repository.insert_kanji_meta(
        DictionaryKanjiMeta(dictionary_id=dictionary_id, character=row["key"], mode=row["mode"], data=row["data"])
        for row in parsed.kanji_meta
    )


__all__ = ["DictionaryExistsError", "ImportRequest", "import_archive", "run_import"]

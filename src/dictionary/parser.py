"""
Parser utilities for Yomitan-style dictionary archives.

An archive is a zip holding ``index.json`` plus any number of numbered JSON
bank files. Format 1 archives spread glossary/meaning entries over trailing
row columns; format 2 and 3 archives store them as a nested array.
"""

from __future__ import annotations

import json
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypedDict, TypeVar

from tqdm import tqdm

from .config import BANKS
from .helpers import ensure_mapping, ensure_row, natural_key, optional_str, safe_sequence, to_int
from .io import read_json_member

RowT = TypeVar("RowT")


class ArchiveFormatError(ValueError):
    """Raised when an archive is missing required files or carries malformed banks."""


class IndexRow(TypedDict):
    title: str
    revision: str
    version: int
    author: Optional[str]
    url: Optional[str]
    description: Optional[str]
    attribution: Optional[str]


class TagRow(TypedDict):
    name: str
    category: str
    order: int
    notes: str
    score: int


class TermRow(TypedDict):
    expression: str
    reading: str
    definition_tags: Optional[str]
    rules: str
    score: int
    glossary: List[Any]
    sequence: Optional[int]
    term_tags: Optional[str]


class KanjiRow(TypedDict):
    character: str
    onyomi: str
    kunyomi: str
    tags: Optional[str]
    meanings: List[str]
    stats: Optional[Dict[str, Any]]


class MetaRow(TypedDict):
    key: str
    mode: str
    data: str


@dataclass
class ParsedArchive:
    """Plain python rows collected from one archive."""

    index: IndexRow
    tags: List[TagRow] = field(default_factory=list)
    terms: List[TermRow] = field(default_factory=list)
    kanji: List[KanjiRow] = field(default_factory=list)
    term_meta: List[MetaRow] = field(default_factory=list)
    kanji_meta: List[MetaRow] = field(default_factory=list)


def parse_archive(path: Path) -> ParsedArchive:
    """Read every bank of the archive at ``path``."""
    if not path.exists():
        raise FileNotFoundError(f"Missing dictionary archive at {path}")
    try:
        archive = zipfile.ZipFile(path)
    except zipfile.BadZipFile as exc:
        raise ArchiveFormatError(f"{path} is not a zip archive") from exc

    with archive:
        members = _member_names(archive)
        if BANKS["index"] not in members:
            raise ArchiveFormatError(f"{path} has no {BANKS['index']}")
        index = _parse_index(_load(archive, members[BANKS["index"]]), BANKS["index"])
        version = index["version"]

        parsed = ParsedArchive(index=index)
        parsed.tags = _collect(archive, members, BANKS["tag"], _parse_tag)
        parsed.terms = _collect(archive, members, BANKS["term"], lambda row, src: _parse_term(row, src, version))
        parsed.kanji = _collect(archive, members, BANKS["kanji"], lambda row, src: _parse_kanji(row, src, version))
        parsed.term_meta = _collect(archive, members, BANKS["term_meta"], _parse_meta)
        parsed.kanji_meta = _collect(archive, members, BANKS["kanji_meta"], _parse_meta)
    return parsed


# ---------------------------------------------------------------------------
# Internal helpers


def _member_names(archive: zipfile.ZipFile) -> Dict[str, str]:
    """Map bare file names to archive member names (archives may nest a folder)."""
    names: Dict[str, str] = {}
    for info in archive.infolist():
        if info.is_dir():
            continue
        names.setdefault(Path(info.filename).name, info.filename)
    return names


def _load(archive: zipfile.ZipFile, member: str) -> Any:
    try:
        return read_json_member(archive, member)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ArchiveFormatError(f"Malformed JSON in {member}: {exc}") from exc


def _collect(
    archive: zipfile.ZipFile,
    members: Dict[str, str],
    prefix: str,
    parse_row: Callable[[Any, str], RowT],
) -> List[RowT]:
    banks = sorted((name for name in members if name.startswith(prefix) and name.endswith(".json")), key=natural_key)
    rows: List[RowT] = []
    for name in tqdm(banks, desc=prefix.rstrip("_"), leave=False, disable=not banks):
        payload = _load(archive, members[name])
        if not isinstance(payload, list):
            raise ArchiveFormatError(f"Expected array payload in {name}, got {type(payload).__name__}")
        for position, entry in enumerate(payload):
            source = f"{name}[{position}]"
            try:
                rows.append(parse_row(entry, source))
            except (TypeError, ValueError) as exc:
                raise ArchiveFormatError(str(exc)) from exc
    return rows


def _parse_index(payload: Any, source: str) -> IndexRow:
    try:
        data = ensure_mapping(payload, source)
        title = data.get("title")
        revision = data.get("revision")
        if not title or revision is None:
            raise ValueError(f"{source} must declare a title and revision")
        return IndexRow(
            title=str(title),
            revision=str(revision),
            version=to_int(data.get("format", data.get("version")), default=3),
            author=optional_str(data.get("author")),
            url=optional_str(data.get("url")),
            description=optional_str(data.get("description")),
            attribution=optional_str(data.get("attribution")),
        )
    except (TypeError, ValueError) as exc:
        raise ArchiveFormatError(str(exc)) from exc


def _parse_tag(entry: Any, source: str) -> TagRow:
    row = ensure_row(entry, source, 5)
    return TagRow(
        name=str(row[0]),
        category=str(row[1] or ""),
        order=to_int(row[2], default=0),
        notes=str(row[3] or ""),
        score=to_int(row[4], default=0),
    )


def _parse_term(entry: Any, source: str, version: int) -> TermRow:
    if version >= 2:
        row = ensure_row(entry, source, 8)
        glossary = list(row[5]) if isinstance(row[5], list) else [row[5]]
        sequence: Optional[int] = to_int(row[6]) if row[6] is not None else None
        term_tags = optional_str(row[7])
    else:
        row = ensure_row(entry, source, 5)
        glossary = list(row[5:])
        sequence = None
        term_tags = None
    return TermRow(
        expression=str(row[0]),
        reading=str(row[1] or ""),
        definition_tags=optional_str(row[2]),
        rules=str(row[3] or ""),
        score=to_int(row[4], default=0),
        glossary=glossary,
        sequence=sequence,
        term_tags=term_tags,
    )


def _parse_kanji(entry: Any, source: str, version: int) -> KanjiRow:
    if version >= 2:
        row = ensure_row(entry, source, 5)
        meanings = safe_sequence(row[4])
        stats = row[5] if len(row) > 5 and isinstance(row[5], dict) else None
    else:
        row = ensure_row(entry, source, 4)
        meanings = safe_sequence(row[4:])
        stats = None
    return KanjiRow(
        character=str(row[0]),
        onyomi=str(row[1] or ""),
        kunyomi=str(row[2] or ""),
        tags=optional_str(row[3]),
        meanings=meanings,
        stats=stats,
    )


def _parse_meta(entry: Any, source: str) -> MetaRow:
    row = ensure_row(entry, source, 3)
    return MetaRow(
        key=str(row[0]),
        mode=str(row[1]),
        data=json.dumps(row[2], ensure_ascii=False, separators=(",", ":")),
    )


__all__ = [
    "ArchiveFormatError",
    "IndexRow",
    "KanjiRow",
    "MetaRow",
    "ParsedArchive",
    "TagRow",
    "TermRow",
    "parse_archive",
]

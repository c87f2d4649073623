"""SQLite persistence for installed dictionaries and their banks.

Every batch write runs inside a single transaction. Lookups take the ids of
the dictionaries to search; an empty id list matches nothing.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence, Union

from .config import SEARCH_LIMIT
from .models import (
    Dictionary,
    DictionaryKanji,
    DictionaryKanjiMeta,
    DictionaryTag,
    DictionaryTerm,
    DictionaryTermMeta,
)

logger = logging.getLogger(__name__)

DictionaryListener = Callable[[List[Dictionary]], None]

SCHEMA = """
CREATE TABLE IF NOT EXISTS dictionaries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    revision TEXT NOT NULL,
    version INTEGER NOT NULL,
    author TEXT,
    url TEXT,
    description TEXT,
    attribution TEXT,
    is_enabled INTEGER NOT NULL DEFAULT 1,
    priority INTEGER NOT NULL DEFAULT 0,
    date_added INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS tags (
    dictionary_id INTEGER NOT NULL REFERENCES dictionaries(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    category TEXT NOT NULL,
    tag_order INTEGER NOT NULL,
    notes TEXT NOT NULL,
    score INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS terms (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    dictionary_id INTEGER NOT NULL REFERENCES dictionaries(id) ON DELETE CASCADE,
    expression TEXT NOT NULL,
    reading TEXT NOT NULL,
    definition_tags TEXT,
    rules TEXT NOT NULL,
    score INTEGER NOT NULL,
    glossary TEXT NOT NULL,
    sequence INTEGER,
    term_tags TEXT
);
CREATE TABLE IF NOT EXISTS kanji (
    dictionary_id INTEGER NOT NULL REFERENCES dictionaries(id) ON DELETE CASCADE,
    character TEXT NOT NULL,
    onyomi TEXT NOT NULL,
    kunyomi TEXT NOT NULL,
    tags TEXT,
    meanings TEXT NOT NULL,
    stats TEXT
);
CREATE TABLE IF NOT EXISTS term_meta (
    dictionary_id INTEGER NOT NULL REFERENCES dictionaries(id) ON DELETE CASCADE,
    expression TEXT NOT NULL,
    mode TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS kanji_meta (
    dictionary_id INTEGER NOT NULL REFERENCES dictionaries(id) ON DELETE CASCADE,
    character TEXT NOT NULL,
    mode TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_tags_dictionary ON tags(dictionary_id);
CREATE INDEX IF NOT EXISTS idx_terms_expression ON terms(expression);
CREATE INDEX IF NOT EXISTS idx_terms_reading ON terms(reading);
CREATE INDEX IF NOT EXISTS idx_terms_dictionary ON terms(dictionary_id);
CREATE INDEX IF NOT EXISTS idx_kanji_character ON kanji(character);
CREATE INDEX IF NOT EXISTS idx_term_meta_expression ON term_meta(expression);
CREATE INDEX IF NOT EXISTS idx_kanji_meta_character ON kanji_meta(character);
"""

_DICTIONARY_COLUMNS = (
    "id, title, revision, version, author, url, description, attribution, is_enabled, priority, date_added"
)


class DictionaryRepository:
    """Batch upsert, batch delete and point/prefix lookup over one SQLite database."""

    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(SCHEMA)
        self._listeners: List[DictionaryListener] = []

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "DictionaryRepository":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Dictionaries

    def insert_dictionary(self, dictionary: Dictionary) -> int:
        date_added = dictionary.date_added or int(time.time() * 1000)
        with self._conn:
            cursor = self._conn.execute(
                "INSERT INTO dictionaries (title, revision, version, author, url, description, attribution, "
                "is_enabled, priority, date_added) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    dictionary.title,
                    dictionary.revision,
                    dictionary.version,
                    dictionary.author,
                    dictionary.url,
                    dictionary.description,
                    dictionary.attribution,
                    int(dictionary.is_enabled),
                    dictionary.priority,
                    date_added,
                ),
            )
        dictionary_id = int(cursor.lastrowid)
        logger.debug("Inserted dictionary %s (%s)", dictionary_id, dictionary.title)
        self._notify()
        return dictionary_id

    def update_dictionary(self, dictionary: Dictionary) -> None:
        if dictionary.id is None:
            raise ValueError(f"Cannot update dictionary '{dictionary.title}' without an id")
        with self._conn:
            self._conn.execute(
                "UPDATE dictionaries SET title = ?, revision = ?, version = ?, author = ?, url = ?, "
                "description = ?, attribution = ?, is_enabled = ?, priority = ? WHERE id = ?",
                (
                    dictionary.title,
                    dictionary.revision,
                    dictionary.version,
                    dictionary.author,
                    dictionary.url,
                    dictionary.description,
                    dictionary.attribution,
                    int(dictionary.is_enabled),
                    dictionary.priority,
                    dictionary.id,
                ),
            )
        self._notify()

    def delete_dictionary(self, dictionary_id: int) -> None:
        """Delete a dictionary; its tags, terms, kanji and meta rows cascade."""
        with self._conn:
            self._conn.execute("DELETE FROM dictionaries WHERE id = ?", (dictionary_id,))
        self._notify()

    def get_dictionary(self, dictionary_id: int) -> Optional[Dictionary]:
        row = self._conn.execute(
            f"SELECT {_DICTIONARY_COLUMNS} FROM dictionaries WHERE id = ?", (dictionary_id,)
        ).fetchone()
        return _map_dictionary(row) if row is not None else None

    def get_all_dictionaries(self) -> List[Dictionary]:
        rows = self._conn.execute(
            f"SELECT {_DICTIONARY_COLUMNS} FROM dictionaries ORDER BY priority DESC, id"
        ).fetchall()
        return [_map_dictionary(row) for row in rows]

    def subscribe_to_dictionaries(self, listener: DictionaryListener) -> Callable[[], None]:
        """
        Call ``listener`` with the current dictionary list now and after every change.

        Returns a callable that removes the subscription.
        """
        self._listeners.append(listener)
        listener(self.get_all_dictionaries())

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Tags

    def insert_tags(self, tags: Iterable[DictionaryTag]) -> None:
        with self._conn:
            self._conn.executemany(
                "INSERT INTO tags (dictionary_id, name, category, tag_order, notes, score) VALUES (?, ?, ?, ?, ?, ?)",
                ((t.dictionary_id, t.name, t.category, t.order, t.notes, t.score) for t in tags),
            )

    def get_tags_for_dictionary(self, dictionary_id: int) -> List[DictionaryTag]:
        rows = self._conn.execute(
            "SELECT * FROM tags WHERE dictionary_id = ? ORDER BY tag_order, rowid", (dictionary_id,)
        ).fetchall()
        return [
            DictionaryTag(
                dictionary_id=row["dictionary_id"],
                name=row["name"],
                category=row["category"],
                order=row["tag_order"],
                notes=row["notes"],
                score=row["score"],
            )
            for row in rows
        ]

    def delete_tags_for_dictionary(self, dictionary_id: int) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM tags WHERE dictionary_id = ?", (dictionary_id,))

    # ------------------------------------------------------------------
    # Terms

    def insert_terms(self, terms: Iterable[DictionaryTerm]) -> None:
        with self._conn:
            self._conn.executemany(
                "INSERT INTO terms (dictionary_id, expression, reading, definition_tags, rules, score, glossary, "
                "sequence, term_tags) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    (
                        t.dictionary_id,
                        t.expression,
                        t.reading,
                        t.definition_tags,
                        t.rules,
                        t.score,
                        _dumps(list(t.glossary)),
                        t.sequence,
                        t.term_tags,
                    )
                    for t in terms
                ),
            )

    def search_terms(
        self,
        query: str,
        dictionary_ids: Sequence[int],
        limit: int = SEARCH_LIMIT,
    ) -> List[DictionaryTerm]:
        """Prefix match on expression or reading."""
        if not dictionary_ids:
            return []
        pattern = _escape_like(query) + "%"
        placeholders = _placeholders(dictionary_ids)
        rows = self._conn.execute(
            f"SELECT * FROM terms WHERE dictionary_id IN ({placeholders}) "
            "AND (expression LIKE ? ESCAPE '\\' OR reading LIKE ? ESCAPE '\\') "
            "ORDER BY length(expression), score DESC, id LIMIT ?",
            (*dictionary_ids, pattern, pattern, limit),
        ).fetchall()
        return [_map_term(row) for row in rows]

    def get_terms_by_expression(self, expression: str, dictionary_ids: Sequence[int]) -> List[DictionaryTerm]:
        if not dictionary_ids:
            return []
        rows = self._conn.execute(
            f"SELECT * FROM terms WHERE expression = ? AND dictionary_id IN ({_placeholders(dictionary_ids)}) "
            "ORDER BY score DESC, id",
            (expression, *dictionary_ids),
        ).fetchall()
        return [_map_term(row) for row in rows]

    def delete_terms_for_dictionary(self, dictionary_id: int) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM terms WHERE dictionary_id = ?", (dictionary_id,))

    # ------------------------------------------------------------------
    # Kanji

    def insert_kanji(self, kanji: Iterable[DictionaryKanji]) -> None:
        with self._conn:
            self._conn.executemany(
                "INSERT INTO kanji (dictionary_id, character, onyomi, kunyomi, tags, meanings, stats) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    (
                        k.dictionary_id,
                        k.character,
                        k.onyomi,
                        k.kunyomi,
                        k.tags,
                        _dumps(list(k.meanings)),
                        _dumps(dict(k.stats)) if k.stats is not None else None,
                    )
                    for k in kanji
                ),
            )

    def get_kanji_by_character(self, character: str, dictionary_ids: Sequence[int]) -> List[DictionaryKanji]:
        if not dictionary_ids:
            return []
        rows = self._conn.execute(
            f"SELECT * FROM kanji WHERE character = ? AND dictionary_id IN ({_placeholders(dictionary_ids)}) "
            "ORDER BY rowid",
            (character, *dictionary_ids),
        ).fetchall()
        return [
            DictionaryKanji(
                dictionary_id=row["dictionary_id"],
                character=row["character"],
                onyomi=row["onyomi"],
                kunyomi=row["kunyomi"],
                tags=row["tags"],
                meanings=tuple(json.loads(row["meanings"])),
                stats=json.loads(row["stats"]) if row["stats"] is not None else None,
            )
            for row in rows
        ]

    def delete_kanji_for_dictionary(self, dictionary_id: int) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM kanji WHERE dictionary_id = ?", (dictionary_id,))

    # ------------------------------------------------------------------
    # Meta

    def insert_term_meta(self, term_meta: Iterable[DictionaryTermMeta]) -> None:
        with self._conn:
            self._conn.executemany(
                "INSERT INTO term_meta (dictionary_id, expression, mode, data) VALUES (?, ?, ?, ?)",
                ((m.dictionary_id, m.expression, m.mode, m.data) for m in term_meta),
            )

    def get_term_meta_for_expression(
        self, expression: str, dictionary_ids: Sequence[int]
    ) -> List[DictionaryTermMeta]:
        rows = self._select_meta("term_meta", "expression", expression, dictionary_ids)
        return [
            DictionaryTermMeta(
                dictionary_id=row["dictionary_id"],
                expression=row["expression"],
                mode=row["mode"],
                data=row["data"],
            )
            for row in rows
        ]

    def delete_term_meta_for_dictionary(self, dictionary_id: int) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM term_meta WHERE dictionary_id = ?", (dictionary_id,))

    def insert_kanji_meta(self, kanji_meta: Iterable[DictionaryKanjiMeta]) -> None:
        with self._conn:
            self._conn.executemany(
                "INSERT INTO kanji_meta (dictionary_id, character, mode, data) VALUES (?, ?, ?, ?)",
                ((m.dictionary_id, m.character, m.mode, m.data) for m in kanji_meta),
            )

    def get_kanji_meta_for_character(
        self, character: str, dictionary_ids: Sequence[int]
    ) -> List[DictionaryKanjiMeta]:
        rows = self._select_meta("kanji_meta", "character", character, dictionary_ids)
        return [
            DictionaryKanjiMeta(
                dictionary_id=row["dictionary_id"],
                character=row["character"],
                mode=row["mode"],
                data=row["data"],
            )
            for row in rows
        ]

    def delete_kanji_meta_for_dictionary(self, dictionary_id: int) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM kanji_meta WHERE dictionary_id = ?", (dictionary_id,))

    # ------------------------------------------------------------------
    # Internal helpers

    def _select_meta(
        self, table: str, key_column: str, key: str, dictionary_ids: Sequence[int]
    ) -> List[sqlite3.Row]:
        # Rows come back in dictionary priority order so equal ranks keep that order downstream.
        if not dictionary_ids:
            return []
        return self._conn.execute(
            f"SELECT m.* FROM {table} AS m JOIN dictionaries AS d ON d.id = m.dictionary_id "
            f"WHERE m.{key_column} = ? AND m.dictionary_id IN ({_placeholders(dictionary_ids)}) "
            "ORDER BY d.priority DESC, d.id, m.rowid",
            (key, *dictionary_ids),
        ).fetchall()

    def _notify(self) -> None:
        if not self._listeners:
            return
        dictionaries = self.get_all_dictionaries()
        for listener in list(self._listeners):
            listener(dictionaries)


def _map_dictionary(row: sqlite3.Row) -> Dictionary:
    return Dictionary(
        id=row["id"],
        title=row["title"],
        revision=row["revision"],
        version=row["version"],
        author=row["author"],
        url=row["url"],
        description=row["description"],
        attribution=row["attribution"],
        is_enabled=bool(row["is_enabled"]),
        priority=row["priority"],
        date_added=row["date_added"],
    )


def _map_term(row: sqlite3.Row) -> DictionaryTerm:
    return DictionaryTerm(
        dictionary_id=row["dictionary_id"],
        expression=row["expression"],
        reading=row["reading"],
        definition_tags=row["definition_tags"],
        rules=row["rules"],
        score=row["score"],
        glossary=tuple(json.loads(row["glossary"])),
        sequence=row["sequence"],
        term_tags=row["term_tags"],
    )


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


__all__ = ["DictionaryListener", "DictionaryRepository", "SCHEMA"]

"""Static configuration for the dictionary store and archive import."""

from __future__ import annotations

from pathlib import Path
from typing import TypedDict


class BankPrefixes(TypedDict):
    index: str
    tag: str
    term: str
    kanji: str
    term_meta: str
    kanji_meta: str


# Default locations used by the Typer CLI; callers may override these.
DEFAULT_DB_PATH = Path("data/dictionaries.db")
DEFAULT_ARCHIVE_ROOT = Path("data/archives")

# ---------------------------------------------------------------------------
# Archive layout (Yomitan / Yomichan dictionary packages).

BANKS: BankPrefixes = {
    "index": "index.json",
    "tag": "tag_bank_",
    "term": "term_bank_",
    "kanji": "kanji_bank_",
    "term_meta": "term_meta_bank_",
    "kanji_meta": "kanji_meta_bank_",
}

# Maximum rows returned by prefix term search.
SEARCH_LIMIT = 100


__all__ = [
    "BANKS",
    "BankPrefixes",
    "DEFAULT_ARCHIVE_ROOT",
    "DEFAULT_DB_PATH",
    "SEARCH_LIMIT",
]

from .importer import DictionaryExistsError, ImportRequest, import_archive, run_import
from .lookup import dictionary_titles, lookup_kanji_frequencies, lookup_term_frequencies
from .parser import ArchiveFormatError, parse_archive
from .repository import DictionaryRepository

__all__ = [
    "ArchiveFormatError",
    "DictionaryExistsError",
    "DictionaryRepository",
    "ImportRequest",
    "dictionary_titles",
    "import_archive",
    "lookup_kanji_frequencies",
    "lookup_term_frequencies",
    "parse_archive",
    "run_import",
]

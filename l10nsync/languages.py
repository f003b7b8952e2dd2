"""Language codes and column resolution for the localization grid."""
from __future__ import annotations

from typing import List, Mapping, Optional, Tuple

from l10nsync.errors import ValidationError
from l10nsync.tabular import HASH_COLUMN, KEY_COLUMN

ENGLISH = "en"
GERMAN = "de"
FRENCH = "fr"
SPANISH = "es"
ITALIAN = "it"
RUSSIAN = "ru"
CHINESE = "zh"
JAPANESE = "ja"

DEFAULT_LANGUAGE = ENGLISH

SUPPORTED_LANGUAGES: Tuple[str, ...] = (
    ENGLISH,
    FRENCH,
    SPANISH,
    GERMAN,
    ITALIAN,
    JAPANESE,
    RUSSIAN,
)

RESERVED_COLUMNS = frozenset({KEY_COLUMN, HASH_COLUMN})


def is_supported(code: str) -> bool:
    return code.strip().lower() in SUPPORTED_LANGUAGES


def find_source_column(header_map: Mapping[str, int], source_language: str) -> Optional[int]:
    """Locate the column holding ``source_language``.

    ``source_language`` may be a code (``en``) or a full name (``English``).
    An exact case-insensitive match wins; otherwise the first column whose name
    is a prefix of ``source_language`` is used, so ``English`` resolves to
    ``en``.
    """

    wanted = source_language.strip().lower()
    if not wanted:
        return None
    candidates = [
        (name, index)
        for name, index in header_map.items()
        if name and name not in RESERVED_COLUMNS
    ]
    for name, index in candidates:
        if name.lower() == wanted:
            return index
    for name, index in candidates:
        if wanted.startswith(name.lower()):
            return index
    return None


def resolve_source_column(header_map: Mapping[str, int], source_language: str) -> int:
    """Return the source column index or raise :class:`ValidationError`."""

    if not (source_language or "").strip():
        raise ValidationError("Source language cannot be empty.")
    index = find_source_column(header_map, source_language)
    if index is None:
        raise ValidationError(
            f"Could not find a column for source language '{source_language}' in the header."
        )
    return index


def target_columns(header_map: Mapping[str, int], source_index: int) -> List[int]:
    """Return the indexes of every translatable column in header order."""

    return sorted(
        index
        for name, index in header_map.items()
        if name and name not in RESERVED_COLUMNS and index != source_index
    )


__all__ = [
    "DEFAULT_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "find_source_column",
    "is_supported",
    "resolve_source_column",
    "target_columns",
]

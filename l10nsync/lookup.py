"""Runtime lookups against the localization grid and the entry creation flow."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from l10nsync.errors import ValidationError
from l10nsync.languages import DEFAULT_LANGUAGE
from l10nsync.tabular import KEY_COLUMN, TabularDocument

logger = logging.getLogger(__name__)

ValueGetter = Callable[[], object]


class LocalizationTable:
    """Key → text mapping for one language with default-language fallback."""

    def __init__(self, language: str, strings: Dict[str, str]) -> None:
        self.language = language
        self._strings = strings

    @classmethod
    def from_document(
        cls,
        document: TabularDocument,
        language: str,
        *,
        default_language: str = DEFAULT_LANGUAGE,
    ) -> "LocalizationTable":
        """Build the table for ``language``.

        Unknown languages fall back to ``default_language``; empty cells fall
        back to the default language's text.  With duplicate keys the last row
        wins.
        """

        header_map = document.header_map()
        language_index = header_map.get(language)
        default_index = header_map.get(default_language)
        if language_index is None:
            logger.warning(
                "Language '%s' not found in TSV file. Falling back to default '%s'.",
                language,
                default_language,
            )
            language_index = default_index
            language = default_language
        if language_index is None:
            raise ValidationError("Default language not found in TSV file. Cannot load any text.")

        key_index = header_map.get(KEY_COLUMN, 0)
        strings: Dict[str, str] = {}
        for _, row in document.data_rows():
            value = row[language_index]
            if not value and default_index is not None:
                value = row[default_index]
            strings[row[key_index]] = value
        return cls(language, strings)

    def __contains__(self, key: object) -> bool:
        return key in self._strings

    def __len__(self) -> int:
        return len(self._strings)

    def get(self, key: str, default: str = "") -> str:
        return self._strings.get(key, default)


@dataclass
class LocalizedString:
    """A translation key with optional ``{placeholder}`` getters.

    Call :meth:`resolve` to obtain the display text; there is no implicit
    string conversion.
    """

    key: str
    default: str = ""
    getters: Dict[str, ValueGetter] = field(default_factory=dict)

    def bind(self, name: str, getter: ValueGetter) -> "LocalizedString":
        self.getters[name] = getter
        return self

    def resolve(self, table: Optional[LocalizationTable] = None) -> str:
        if not self.key:
            return ""
        text = table.get(self.key, self.default) if table is not None else self.default
        for name, getter in self.getters.items():
            text = text.replace("{" + name + "}", str(getter()))
        return text


def add_entry(document: TabularDocument, key: str, language: str, text: str) -> int:
    """Append a new row holding ``text`` in the ``language`` column.

    All other cells start empty so the next translate run fills them in.
    Returns the new row index.
    """

    if not key:
        raise ValidationError("A key is required to add an entry.")
    if document.is_empty:
        raise ValidationError("The TSV file has no header row.")
    language_index = document.column_index(language)
    if language_index is None:
        raise ValidationError(f"Language '{language}' not found in the TSV header. Cannot add new entry.")
    if document.find_row(key) is not None:
        raise ValidationError(f"Key '{key}' already exists in the localization sheet.")

    key_index = document.column_index(KEY_COLUMN)
    row = [""] * document.column_count
    row[0 if key_index is None else key_index] = key
    row[language_index] = text
    return document.append_row(row)


__all__ = ["LocalizationTable", "LocalizedString", "add_entry"]

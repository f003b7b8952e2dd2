"""Tab-separated localization grid.

The grid has a single schema: the first row is a header whose first column is
``key``, followed by one column per language code and, once translations have
been verified, a ``sourceHash`` integrity column.  Every data row is kept at
exactly the header width: short rows are padded with empty strings on parse
and when a column is appended.

Cells are never quoted or escaped.  A cell that contains a tab or a line break
cannot be represented and will corrupt the grid when written.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from l10nsync.errors import ParseError

logger = logging.getLogger(__name__)

KEY_COLUMN = "key"
HASH_COLUMN = "sourceHash"
DELIMITER = "\t"

Row = List[str]


@dataclass
class TabularDocument:
    """In-memory grid; ``rows[0]`` is the header when present."""

    rows: List[Row] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------
    @property
    def header(self) -> Row:
        return self.rows[0] if self.rows else []

    @property
    def column_count(self) -> int:
        return len(self.header)

    @property
    def is_empty(self) -> bool:
        """``True`` when the document has no header, i.e. nothing to process."""

        return not self.rows

    def __len__(self) -> int:
        return max(0, len(self.rows) - 1)

    def data_rows(self) -> Iterator[tuple[int, Row]]:
        """Yield ``(row_index, row)`` for every row after the header."""

        for index in range(1, len(self.rows)):
            yield index, self.rows[index]

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------
    def header_map(self) -> Dict[str, int]:
        """Return a mapping of trimmed column names to their index.

        When a name appears twice the first occurrence wins.
        """

        mapping: Dict[str, int] = {}
        for index, name in enumerate(self.header):
            mapping.setdefault(name.strip(), index)
        return mapping

    def column_index(self, name: str) -> Optional[int]:
        return self.header_map().get(name.strip())

    def ensure_column(self, name: str) -> int:
        """Return the index of ``name``, appending the column if it is missing."""

        existing = self.column_index(name)
        if existing is not None:
            return existing
        if not self.rows:
            self.rows.append([])
        self.rows[0].append(name)
        for _, row in self.data_rows():
            row.append("")
        return len(self.rows[0]) - 1

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------
    def cell(self, row_index: int, column_index: int) -> str:
        return self.rows[row_index][column_index]

    def set_cell(self, row_index: int, column_index: int, value: str) -> None:
        if row_index < 1:
            raise IndexError("The header row cannot be edited through set_cell")
        self.rows[row_index][column_index] = value

    def find_row(self, key: str) -> Optional[int]:
        """Return the index of the last data row whose key equals ``key``."""

        key_index = self.column_index(KEY_COLUMN)
        if key_index is None:
            key_index = 0
        found: Optional[int] = None
        for index, row in self.data_rows():
            if row[key_index] == key:
                found = index
        return found

    def append_row(self, values: Sequence[str]) -> int:
        """Append a data row padded to the header width and return its index."""

        if self.is_empty:
            raise ValueError("Cannot append a data row to a document without a header")
        row = _normalise_row(list(values), self.column_count, len(self.rows))
        self.rows.append(row)
        return len(self.rows) - 1


def _normalise_row(values: Row, width: int, line_number: int) -> Row:
    if len(values) < width:
        values.extend([""] * (width - len(values)))
    elif len(values) > width:
        logger.warning(
            "Row %d has %d cells but the header has %d; extra cells dropped",
            line_number,
            len(values),
            width,
        )
        del values[width:]
    return values


def parse(text: str) -> TabularDocument:
    """Parse TSV ``text`` into a :class:`TabularDocument`.

    Blank lines are skipped.  The first remaining line becomes the header and
    every following line is padded (or truncated) to the header width.
    """

    document = TabularDocument()
    width = 0
    for line_number, raw in enumerate(text.split("\n"), start=1):
        line = raw.rstrip("\r")
        if not line.strip():
            continue
        values = line.split(DELIMITER)
        if document.is_empty:
            document.rows.append(values)
            width = len(values)
            continue
        document.rows.append(_normalise_row(values, width, line_number))
    return document


def serialize(document: TabularDocument, *, trailing_newline: bool = True) -> str:
    """Return ``document`` as TSV text."""

    text = "\n".join(DELIMITER.join(row) for row in document.rows)
    if trailing_newline and text:
        text += "\n"
    return text


def read_document(path: str | Path) -> TabularDocument:
    """Read and parse the UTF-8 TSV file at ``path``."""

    file_path = Path(path)
    if not file_path.is_file():
        raise ParseError(f"Localization file not found: {file_path}")
    try:
        with file_path.open("r", encoding="utf-8-sig", newline="") as handle:
            text = handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"Localization file could not be read: {exc}") from exc
    return parse(text)


def write_document(path: str | Path, document: TabularDocument) -> Path:
    """Serialize ``document`` to ``path`` as UTF-8 with ``\\n`` line endings."""

    file_path = Path(path)
    if file_path.parent and not file_path.parent.exists():
        file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(serialize(document))
    logger.debug("Wrote %d rows to %s", len(document), file_path)
    return file_path


__all__ = [
    "DELIMITER",
    "HASH_COLUMN",
    "KEY_COLUMN",
    "Row",
    "TabularDocument",
    "parse",
    "read_document",
    "serialize",
    "write_document",
]

"""Detect rows whose source text changed since their translations were made."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from l10nsync.hash import text_sha256
from l10nsync.tabular import HASH_COLUMN, KEY_COLUMN, TabularDocument

logger = logging.getLogger(__name__)


@dataclass
class StalenessReport:
    stale_count: int = 0
    modified: bool = False
    hash_column: Optional[int] = None
    hash_column_created: bool = False
    stale_keys: List[str] = field(default_factory=list)


def detect_stale_rows(document: TabularDocument, source_index: int) -> StalenessReport:
    """Verify every row's ``sourceHash`` against its source cell.

    A row is stale when the stored hash differs from the SHA-256 of the source
    text.  Stale rows get every translation cell cleared and the hash updated.
    Rows with an empty source cell are left alone.  The document is mutated in
    place; persisting it is up to the caller.
    """

    report = StalenessReport()
    if document.is_empty:
        return report

    hash_index = document.column_index(HASH_COLUMN)
    if hash_index is None:
        hash_index = document.ensure_column(HASH_COLUMN)
        report.hash_column_created = True
        report.modified = True
        logger.info("Added '%s' column at index %d", HASH_COLUMN, hash_index)
    report.hash_column = hash_index

    key_index = document.column_index(KEY_COLUMN)
    if key_index is None:
        key_index = 0
    protected = {key_index, source_index, hash_index}
    dependents = [index for index in range(document.column_count) if index not in protected]

    for _, row in document.data_rows():
        source_text = row[source_index]
        if not source_text:
            continue
        new_hash = text_sha256(source_text)
        if row[hash_index] == new_hash:
            continue
        for index in dependents:
            row[index] = ""
        row[hash_index] = new_hash
        report.stale_count += 1
        report.stale_keys.append(row[key_index])
        report.modified = True

    if report.stale_count:
        logger.info("Cleared translations for %d stale row(s)", report.stale_count)
    return report


__all__ = ["StalenessReport", "detect_stale_rows"]

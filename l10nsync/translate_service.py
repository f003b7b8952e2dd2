"""Translate operation: verify source hashes, fill empty cells, save the file."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from l10nsync import languages, tabular
from l10nsync.errors import ValidationError
from l10nsync.staleness import StalenessReport, detect_stale_rows
from l10nsync.translation import (
    ProgressCallback,
    TranslationProvider,
    TranslationRunResult,
    TranslationScheduler,
)
from l10nsync.translator_client import ChatCompletionTranslator

logger = logging.getLogger(__name__)


@dataclass
class TranslateOutcome:
    staleness: StalenessReport
    run: TranslationRunResult
    saved_path: Optional[Path]
    message: str


def output_path_for(path: Path, overwrite: bool) -> Path:
    """Return where a translated copy of ``path`` is written."""

    if overwrite:
        return path
    return path.with_name(f"{path.stem}_modified{path.suffix}")


class TranslationService:
    """Run the whole translate pipeline for the configured document."""

    def __init__(self, settings, provider: Optional[TranslationProvider] = None) -> None:
        self._settings = settings
        self._provider = provider

    def _resolve_provider(self) -> TranslationProvider:
        if self._provider is not None:
            return self._provider
        return ChatCompletionTranslator(
            self._settings.api_key,
            model=self._settings.model,
            api_url=self._settings.api_url,
        )

    def translate_file(
        self,
        *,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TranslateOutcome:
        settings = self._settings
        raw_path = (settings.document_path or "").strip()
        if not raw_path:
            raise ValidationError("Please assign a valid source TSV file path.")
        path = Path(raw_path).expanduser()

        document = tabular.read_document(path)
        if document.is_empty:
            return TranslateOutcome(
                staleness=StalenessReport(),
                run=TranslationRunResult(nothing_to_do=True),
                saved_path=None,
                message="The TSV file is empty; nothing to translate.",
            )

        header_map = document.header_map()
        source_index = languages.resolve_source_column(header_map, settings.source_language)
        targets = languages.target_columns(header_map, source_index)
        for index in targets:
            if not languages.is_supported(document.header[index]):
                logger.warning("Column '%s' is not a known language code", document.header[index])
        provider = self._resolve_provider()

        staleness = detect_stale_rows(document, source_index)
        scheduler = TranslationScheduler(
            provider,
            custom_instructions=settings.custom_instructions,
            progress_callback=progress_callback,
            cancel_event=cancel_event,
        )
        run = scheduler.run(document, source_index, targets, document_modified=staleness.modified)

        if run.nothing_to_do:
            return TranslateOutcome(staleness, run, None, "No changes or empty cells to translate.")

        saved_path: Optional[Path] = None
        if run.modified:
            saved_path = tabular.write_document(
                output_path_for(path, settings.overwrite_original_file), document
            )
            logger.info("Saved translated TSV to %s", saved_path)

        return TranslateOutcome(staleness, run, saved_path, _summary(staleness, run, saved_path))


def _summary(staleness: StalenessReport, run: TranslationRunResult, saved_path: Optional[Path]) -> str:
    parts = []
    if staleness.stale_count:
        parts.append(f"Found and cleared {staleness.stale_count} stale translation(s).")
    parts.append(f"Translated {run.succeeded} of {run.total} cell(s).")
    if run.errors:
        parts.append(f"{run.failed} failed.")
    if run.cancelled:
        parts.append("Process stopped by user.")
    if saved_path is not None:
        parts.append(f"Saved to {saved_path}.")
    else:
        parts.append("Process complete!")
    return " ".join(parts)


__all__ = ["TranslateOutcome", "TranslationService", "output_path_for"]

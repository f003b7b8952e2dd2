"""Incremental translation of empty target cells.

The scheduler walks the grid row by row and, within a row, column by column,
collecting one task per empty translation cell.  Tasks are sent to the
provider one at a time in that order.  A failed task is recorded and skipped;
it never stops the run.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Protocol, Sequence

from l10nsync.errors import L10nSyncError
from l10nsync.tabular import TabularDocument

logger = logging.getLogger(__name__)

DEFAULT_SENTINELS: Sequence[str] = ("<null>", "null")
BASE_INSTRUCTIONS = (
    "Translate the given text to the language with code '{code}'. "
    "Provide only the translated text, no commentary, formatting, or quotes."
)
DEFAULT_CUSTOM_INSTRUCTIONS = (
    "Do not translate any text found inside curly braces, such as {playerName} or {score}. "
    "Keep the text inside the braces exactly as it is in the final translation."
)

ProgressCallback = Callable[[float, str], None]


class TranslationProvider(Protocol):
    def translate(self, text: str, target_language: str, system_instructions: str) -> str:
        ...


@dataclass(frozen=True)
class TranslationTask:
    row_index: int
    column_index: int
    source_text: str


@dataclass
class TaskError:
    task: TranslationTask
    language: str
    message: str
    error: Exception


@dataclass
class TranslationRunResult:
    total: int = 0
    succeeded: int = 0
    completed: int = 0
    errors: List[TaskError] = field(default_factory=list)
    modified: bool = False
    cancelled: bool = False
    nothing_to_do: bool = False

    @property
    def failed(self) -> int:
        return len(self.errors)


def build_system_instructions(target_language: str, custom_instructions: str = "") -> str:
    prompt = BASE_INSTRUCTIONS.format(code=target_language)
    if custom_instructions and custom_instructions.strip():
        prompt += " " + custom_instructions.strip()
    return prompt


def normalise_translation(text: Optional[str], sentinels: Iterable[str] = DEFAULT_SENTINELS) -> str:
    """Trim provider output and map "no translation" markers to an empty string."""

    cleaned = (text or "").strip()
    lowered = cleaned.lower()
    if any(lowered == marker.strip().lower() for marker in sentinels):
        return ""
    return cleaned


def build_tasks(
    document: TabularDocument,
    source_index: int,
    target_indexes: Sequence[int],
) -> List[TranslationTask]:
    """Return tasks for every empty target cell whose source cell has text."""

    tasks: List[TranslationTask] = []
    columns = sorted(set(target_indexes))
    for row_index, row in document.data_rows():
        source_text = row[source_index]
        if not source_text:
            continue
        for column_index in columns:
            if not row[column_index].strip():
                tasks.append(TranslationTask(row_index, column_index, source_text))
    return tasks


class TranslationScheduler:
    """Fill empty translation cells through a :class:`TranslationProvider`."""

    def __init__(
        self,
        provider: TranslationProvider,
        *,
        custom_instructions: str = DEFAULT_CUSTOM_INSTRUCTIONS,
        sentinels: Sequence[str] = DEFAULT_SENTINELS,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self._provider = provider
        self._custom_instructions = custom_instructions
        self._sentinels = tuple(sentinels)
        self._progress_callback = progress_callback
        self._cancel_event = cancel_event

    def run(
        self,
        document: TabularDocument,
        source_index: int,
        target_indexes: Sequence[int],
        *,
        document_modified: bool = False,
    ) -> TranslationRunResult:
        tasks = build_tasks(document, source_index, target_indexes)
        result = TranslationRunResult(total=len(tasks), modified=document_modified)
        if not tasks:
            result.nothing_to_do = not document_modified
            if result.nothing_to_do:
                self._report(1.0, "No changes or empty cells to translate.")
            return result

        header = document.header
        logger.info("Translating %d cell(s)", len(tasks))
        for task in tasks:
            if self._cancel_event is not None and self._cancel_event.is_set():
                result.cancelled = True
                logger.info("Translation cancelled after %d of %d task(s)", result.completed, result.total)
                break

            language = header[task.column_index].strip()
            self._report(
                result.completed / result.total,
                f"Translating '{task.source_text}' to {language}...",
            )
            try:
                translated = self._provider.translate(
                    task.source_text,
                    language,
                    build_system_instructions(language, self._custom_instructions),
                )
            except L10nSyncError as exc:
                logger.warning(
                    "Translation of row %d to %s failed: %s", task.row_index, language, exc
                )
                result.errors.append(
                    TaskError(task=task, language=language, message=str(exc), error=exc)
                )
            else:
                document.set_cell(
                    task.row_index,
                    task.column_index,
                    normalise_translation(translated, self._sentinels),
                )
                result.succeeded += 1
                result.modified = True

            result.completed += 1
            self._report(result.completed / result.total, f"{result.completed}/{result.total} done")

        return result

    def _report(self, fraction: float, message: str) -> None:
        if not self._progress_callback:
            return
        try:
            self._progress_callback(fraction, message)
        except Exception:  # pragma: no cover - UI callback guard
            logger.debug("Progress callback failed", exc_info=True)


__all__ = [
    "DEFAULT_CUSTOM_INSTRUCTIONS",
    "DEFAULT_SENTINELS",
    "TaskError",
    "TranslationProvider",
    "TranslationRunResult",
    "TranslationScheduler",
    "TranslationTask",
    "build_system_instructions",
    "build_tasks",
    "normalise_translation",
]

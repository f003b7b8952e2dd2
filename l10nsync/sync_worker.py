"""Background worker running l10nsync operations one at a time."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from l10nsync.errors import L10nSyncError
from l10nsync.sync_engine import RemoteSyncEngine, SyncContext, SyncState, SyncStatus
from l10nsync.translate_service import TranslationService

DEFAULT_POLL_SECONDS = 30


@dataclass
class OperationResult:
    """Summary of one operation run by the worker."""

    action: str
    message: str
    ok: bool
    detail: Any = None


ResultCallback = Callable[[OperationResult], None]


def _from_status(action: str, status: SyncStatus) -> OperationResult:
    return OperationResult(
        action=action,
        message=status.message,
        ok=status.state is not SyncState.ERROR,
        detail=status,
    )


class SyncWorker:
    """Run Check/Pull/Push/Authorize/Translate under the context's busy flag.

    ``run_*`` methods execute on the calling thread and return ``None`` when
    another operation already holds the flag.  ``*_now`` methods start the
    same work on a daemon thread.  ``start`` launches the periodic checker.
    """

    def __init__(
        self,
        context: SyncContext,
        engine: RemoteSyncEngine,
        token_manager,
        translation_service: TranslationService,
        *,
        result_callback: Optional[ResultCallback] = None,
        poll_seconds: float = DEFAULT_POLL_SECONDS,
    ) -> None:
        self.context = context
        self._engine = engine
        self._tokens = token_manager
        self._translation = translation_service
        self._result_callback = result_callback
        self._poll_seconds = max(1.0, poll_seconds)
        self._stop_event = threading.Event()
        self._cancel_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Periodic checker
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2)
        self._thread = None

    def periodic_tick(self) -> Optional[OperationResult]:
        """Run a Check when one is due and nothing else is running."""

        if self.context.is_busy or not self._engine.check_due():
            return None
        return self.run_check()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.periodic_tick()
            except Exception:  # pragma: no cover - keep the loop alive
                self._logger.exception("Periodic check failed")
            if self._stop_event.wait(self._poll_seconds):
                break

    # ------------------------------------------------------------------
    # Background entry points
    # ------------------------------------------------------------------
    def check_now(self) -> None:
        threading.Thread(target=self.run_check, daemon=True).start()

    def pull_now(self) -> None:
        threading.Thread(target=self.run_pull, daemon=True).start()

    def push_now(self) -> None:
        threading.Thread(target=self.run_push, daemon=True).start()

    def authorize_now(self) -> None:
        threading.Thread(target=self.run_authorize, daemon=True).start()

    def translate_now(self) -> None:
        threading.Thread(target=self.run_translate, daemon=True).start()

    def stop_translation(self) -> None:
        """Stop the running translation before its next cell is sent."""

        self._cancel_event.set()

    # ------------------------------------------------------------------
    # Synchronous operations
    # ------------------------------------------------------------------
    def run_check(self) -> Optional[OperationResult]:
        return self._exclusive("check", lambda: _from_status("check", self._engine.check()))

    def run_pull(self) -> Optional[OperationResult]:
        return self._exclusive("pull", lambda: _from_status("pull", self._engine.pull()))

    def run_push(self) -> Optional[OperationResult]:
        return self._exclusive("push", lambda: _from_status("push", self._engine.push()))

    def run_authorize(self) -> Optional[OperationResult]:
        return self._exclusive("authorize", self._authorize)

    def run_translate(self) -> Optional[OperationResult]:
        return self._exclusive("translate", self._translate)

    def _authorize(self) -> OperationResult:
        context = self.context
        context.set_status(SyncState.CHECKING, "Waiting for Google authentication in browser...")
        try:
            self._tokens.authorize()
        except L10nSyncError as exc:
            status = context.set_status(SyncState.ERROR, str(exc), exc)
        else:
            status = context.set_status(
                SyncState.UNKNOWN, "Authentication successful! Ready to export."
            )
        return _from_status("authorize", status)

    def _translate(self) -> OperationResult:
        self._cancel_event.clear()
        self.context.report_progress(0.0, "Parsing TSV file...")
        try:
            outcome = self._translation.translate_file(
                progress_callback=self.context.report_progress,
                cancel_event=self._cancel_event,
            )
        except L10nSyncError as exc:
            self._logger.warning("Translation aborted: %s", exc)
            self.context.report_progress(0.0, str(exc))
            return OperationResult(action="translate", message=str(exc), ok=False, detail=exc)
        final = self.context.progress if outcome.run.cancelled else 1.0
        self.context.report_progress(final, outcome.message)
        return OperationResult(action="translate", message=outcome.message, ok=True, detail=outcome)

    def _exclusive(self, action: str, operation: Callable[[], OperationResult]) -> Optional[OperationResult]:
        if not self.context.try_acquire():
            self._logger.debug("Skipping %s; another operation is running", action)
            return None
        try:
            try:
                result = operation()
            except Exception as exc:  # pragma: no cover - best effort logging
                self._logger.exception("Unexpected error during %s", action)
                self.context.set_status(SyncState.ERROR, f"{action.capitalize()} failed: {exc}", exc)
                result = OperationResult(action=action, message=str(exc), ok=False, detail=exc)
        finally:
            self.context.release()
        self._dispatch(result)
        return result

    def _dispatch(self, result: OperationResult) -> None:
        if not self._result_callback:
            return
        try:
            self._result_callback(result)
        except Exception:  # pragma: no cover - UI callback guard
            self._logger.debug("Result callback failed", exc_info=True)


__all__ = ["DEFAULT_POLL_SECONDS", "OperationResult", "SyncWorker"]

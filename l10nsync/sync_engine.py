"""Local ⇄ Google Sheet synchronisation state machine.

``check``
    Download the sheet as TSV and compare its SHA-256 with the local file.
    Results in ``IN_SYNC``, ``OUT_OF_SYNC`` or ``ERROR``; never writes the
    local file.

``pull``
    Overwrite the local file with the sheet contents, byte for byte.

``push``
    Replace the sheet contents with the local file using a clear + paste
    ``batchUpdate``.  Needs a stored refresh token.

The engine only records outcomes on the :class:`SyncContext`; exclusive
access (the busy flag) is taken by the caller, normally
:class:`l10nsync.sync_worker.SyncWorker`.
"""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional

from l10nsync.errors import L10nSyncError, ParseError, ValidationError
from l10nsync.hash import text_sha256
from l10nsync.sheets_client import require_sheet_location

logger = logging.getLogger(__name__)


class SyncState(str, enum.Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    IN_SYNC = "in_sync"
    OUT_OF_SYNC = "out_of_sync"
    ERROR = "error"


@dataclass(frozen=True)
class SyncStatus:
    state: SyncState
    message: str
    error: Optional[Exception] = None


StatusObserver = Callable[[SyncStatus], None]
ProgressObserver = Callable[[float, str], None]
SettingsSaver = Callable[[object], None]


class SyncContext:
    """Shared state of one l10nsync session.

    Holds the settings, the most recent :class:`SyncStatus`, translation
    progress, and the process-wide busy lock.  Observers are called on every
    change; a failing observer is logged and ignored.
    """

    def __init__(self, settings, save_settings: SettingsSaver) -> None:
        self.settings = settings
        self._save_settings = save_settings
        self._status = SyncStatus(SyncState.UNKNOWN, "Awaiting first check.")
        self._status_observers: List[StatusObserver] = []
        self._progress_observers: List[ProgressObserver] = []
        self._busy = threading.Lock()
        self.progress = 0.0
        self.activity = "Idle"

    # ------------------------------------------------------------------
    # Busy flag
    # ------------------------------------------------------------------
    def try_acquire(self) -> bool:
        return self._busy.acquire(blocking=False)

    def release(self) -> None:
        self._busy.release()

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    @property
    def can_pull(self) -> bool:
        return not self.is_busy and self._status.state is SyncState.OUT_OF_SYNC

    @property
    def can_push(self) -> bool:
        return not self.is_busy and bool((self.settings.refresh_token or "").strip())

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    @property
    def status(self) -> SyncStatus:
        return self._status

    def set_status(
        self, state: SyncState, message: str, error: Optional[Exception] = None
    ) -> SyncStatus:
        self._status = SyncStatus(state, message, error)
        log = logger.warning if state is SyncState.ERROR else logger.info
        log("[Sync] %s: %s", state.value, message)
        for observer in list(self._status_observers):
            try:
                observer(self._status)
            except Exception:  # pragma: no cover - UI callback guard
                logger.debug("Status observer failed", exc_info=True)
        return self._status

    def report_progress(self, fraction: float, message: str) -> None:
        self.progress = fraction
        self.activity = message
        for observer in list(self._progress_observers):
            try:
                observer(fraction, message)
            except Exception:  # pragma: no cover - UI callback guard
                logger.debug("Progress observer failed", exc_info=True)

    def subscribe(self, observer: StatusObserver) -> Callable[[], None]:
        self._status_observers.append(observer)
        return lambda: self._status_observers.remove(observer)

    def subscribe_progress(self, observer: ProgressObserver) -> Callable[[], None]:
        self._progress_observers.append(observer)
        return lambda: self._progress_observers.remove(observer)

    def persist(self) -> None:
        self._save_settings(self.settings)


def _now_label() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _document_path(settings) -> Path:
    raw = (settings.document_path or "").strip()
    if not raw:
        raise ValidationError("Configure the local TSV path and the Google Sheet URL.")
    return Path(raw).expanduser()


def _read_local_text(path: Path) -> str:
    if not path.is_file():
        raise ParseError(f"Local TSV file not found: {path}")
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"Local TSV file could not be read: {exc}") from exc


class RemoteSyncEngine:
    """Run Check, Pull and Push against a remote sheet service."""

    def __init__(self, context: SyncContext, sheets_client, token_manager) -> None:
        self._context = context
        self._client = sheets_client
        self._tokens = token_manager

    @property
    def context(self) -> SyncContext:
        return self._context

    def check_due(self, now: Optional[datetime] = None) -> bool:
        """Return ``True`` when the periodic check interval has elapsed."""

        settings = self._context.settings
        if not settings.auto_check:
            return False
        last = settings.last_check_time()
        if last is None:
            return True
        moment = now or datetime.now(timezone.utc)
        return moment - last > timedelta(minutes=settings.check_interval_minutes)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def check(self) -> SyncStatus:
        context = self._context
        settings = context.settings
        context.set_status(SyncState.CHECKING, "Downloading from Google Sheets...")
        try:
            sheet_id, gid = require_sheet_location(settings.sheet_url)
            local_text = _read_local_text(_document_path(settings))
            remote_text = self._client.fetch_as_tsv(sheet_id, gid)
        except ValidationError as exc:
            return context.set_status(SyncState.ERROR, f"Error checking sheet: {exc}", exc)
        except L10nSyncError as exc:
            status = context.set_status(SyncState.ERROR, f"Error checking sheet: {exc}", exc)
        else:
            if text_sha256(remote_text) == text_sha256(local_text):
                status = context.set_status(
                    SyncState.IN_SYNC, f"In Sync. Last checked: {_now_label()}"
                )
            else:
                status = context.set_status(
                    SyncState.OUT_OF_SYNC,
                    f"Out of Sync! Google Sheet has changes. Last checked: {_now_label()}",
                )
        settings.mark_checked()
        context.persist()
        return status

    def pull(self) -> SyncStatus:
        context = self._context
        settings = context.settings
        context.set_status(SyncState.CHECKING, "Importing data from Google Sheet...")
        try:
            sheet_id, gid = require_sheet_location(settings.sheet_url)
            path = _document_path(settings)
            if not path.is_file():
                raise ParseError(f"Local TSV file not found: {path}")
            remote_text = self._client.fetch_as_tsv(sheet_id, gid)
            try:
                with path.open("w", encoding="utf-8", newline="") as handle:
                    handle.write(remote_text)
            except OSError as exc:
                raise ParseError(f"Local TSV file could not be written: {exc}") from exc
        except L10nSyncError as exc:
            return context.set_status(SyncState.ERROR, f"Error importing: {exc}", exc)

        settings.last_known_hash = text_sha256(remote_text)
        settings.mark_checked()
        context.persist()
        return context.set_status(SyncState.IN_SYNC, f"Import complete! {_now_label()}")

    def push(self) -> SyncStatus:
        context = self._context
        settings = context.settings
        context.set_status(SyncState.CHECKING, "Getting fresh access token...")
        try:
            sheet_id, gid = require_sheet_location(settings.sheet_url)
            local_text = _read_local_text(_document_path(settings))
            credentials = self._tokens.refresh()
            context.set_status(SyncState.CHECKING, "Sending batch update to Google Sheets...")
            self._client.replace_contents(sheet_id, gid, local_text, credentials=credentials)
        except L10nSyncError as exc:
            return context.set_status(SyncState.ERROR, f"Export failed: {exc}", exc)

        settings.last_known_hash = text_sha256(local_text)
        settings.mark_checked()
        context.persist()
        return context.set_status(
            SyncState.IN_SYNC, f"Export successful! Last updated: {_now_label()}"
        )


__all__ = [
    "RemoteSyncEngine",
    "SyncContext",
    "SyncState",
    "SyncStatus",
]

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from l10nsync.errors import AuthError
from l10nsync.sync_engine import RemoteSyncEngine, SyncContext, SyncState
from l10nsync.sync_worker import OperationResult, SyncWorker
from l10nsync.translate_service import TranslationService
from settings import LocalizationSettings

SHEET_URL = "https://docs.google.com/spreadsheets/d/sheet-1/edit#gid=0"
LOCAL_TEXT = "key\tEnglish\tfr\ngreeting\tHello\t\n"


class _FakeSheets:
    def __init__(self, remote_text: str = LOCAL_TEXT) -> None:
        self.remote_text = remote_text
        self.fetches = 0

    def fetch_as_tsv(self, sheet_id: str, gid: str) -> str:
        self.fetches += 1
        return self.remote_text

    def replace_contents(self, sheet_id, gid, tsv, *, credentials=None):
        return {}


class _FakeTokens:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.authorized = 0

    def authorize(self) -> None:
        self.authorized += 1
        if self.error is not None:
            raise self.error

    def refresh(self):
        return "credentials"


class _EchoProvider:
    def __init__(self) -> None:
        self.calls: List[str] = []

    def translate(self, text: str, target_language: str, system_instructions: str) -> str:
        self.calls.append(target_language)
        return f"{text}-{target_language}"


def _worker(tmp_path: Path, *, sheets=None, tokens=None, provider=None, results=None):
    path = tmp_path / "strings.tsv"
    path.write_text(LOCAL_TEXT, encoding="utf-8")
    settings = LocalizationSettings(
        document_path=str(path),
        sheet_url=SHEET_URL,
        refresh_token="token",
        overwrite_original_file=True,
    )
    context = SyncContext(settings, lambda item: None)
    tokens = tokens or _FakeTokens()
    engine = RemoteSyncEngine(context, sheets or _FakeSheets(), tokens)
    service = TranslationService(settings, provider=provider or _EchoProvider())
    worker = SyncWorker(
        context,
        engine,
        tokens,
        service,
        result_callback=results.append if results is not None else None,
    )
    return worker, path


def test_operation_is_skipped_while_busy(tmp_path: Path) -> None:
    sheets = _FakeSheets()
    worker, _ = _worker(tmp_path, sheets=sheets)

    assert worker.context.try_acquire()
    try:
        assert worker.run_check() is None
        assert worker.run_translate() is None
    finally:
        worker.context.release()

    assert sheets.fetches == 0


def test_run_check_reports_result_and_releases_flag(tmp_path: Path) -> None:
    results: List[OperationResult] = []
    worker, _ = _worker(tmp_path, results=results)

    result = worker.run_check()

    assert result is not None and result.ok
    assert result.action == "check"
    assert results == [result]
    assert worker.context.is_busy is False


def test_periodic_tick_runs_only_when_due(tmp_path: Path) -> None:
    sheets = _FakeSheets()
    worker, _ = _worker(tmp_path, sheets=sheets)

    assert worker.periodic_tick() is not None
    assert worker.periodic_tick() is None
    assert sheets.fetches == 1


def test_periodic_tick_respects_disabled_auto_check(tmp_path: Path) -> None:
    sheets = _FakeSheets()
    worker, _ = _worker(tmp_path, sheets=sheets)
    worker.context.settings.auto_check = False

    assert worker.periodic_tick() is None
    assert sheets.fetches == 0


def test_authorize_success_and_failure_statuses(tmp_path: Path) -> None:
    worker, _ = _worker(tmp_path)
    states: List[SyncState] = []
    worker.context.subscribe(lambda status: states.append(status.state))

    result = worker.run_authorize()

    assert result is not None and result.ok
    assert states == [SyncState.CHECKING, SyncState.UNKNOWN]

    failing, _ = _worker(tmp_path, tokens=_FakeTokens(AuthError("denied")))
    result = failing.run_authorize()

    assert result is not None and not result.ok
    assert failing.context.status.state is SyncState.ERROR
    assert "denied" in result.message


def test_run_translate_fills_cells_and_reports_progress(tmp_path: Path) -> None:
    provider = _EchoProvider()
    worker, path = _worker(tmp_path, provider=provider)
    progress: List[float] = []
    worker.context.subscribe_progress(lambda fraction, message: progress.append(fraction))

    result = worker.run_translate()

    assert result is not None and result.ok
    assert provider.calls == ["fr"]
    assert "Hello-fr" in path.read_text(encoding="utf-8")
    assert progress[0] == 0.0
    assert progress[-1] == 1.0


def test_translate_failure_is_reported_not_raised(tmp_path: Path) -> None:
    worker, _ = _worker(tmp_path)
    worker.context.settings.source_language = "Klingon"

    result = worker.run_translate()

    assert result is not None
    assert result.ok is False
    assert "Klingon" in result.message


def test_stop_translation_cancels_remaining_cells(tmp_path: Path) -> None:
    class _StoppingProvider:
        def __init__(self, worker_ref: List[SyncWorker]) -> None:
            self.worker_ref = worker_ref
            self.calls = 0

        def translate(self, text: str, target_language: str, system_instructions: str) -> str:
            self.calls += 1
            self.worker_ref[0].stop_translation()
            return "x"

    holder: List[SyncWorker] = []
    provider = _StoppingProvider(holder)
    worker, path = _worker(tmp_path, provider=provider)
    holder.append(worker)
    path.write_text("key\tEnglish\tfr\tde\na\tA\t\t\nb\tB\t\t\n", encoding="utf-8")

    result = worker.run_translate()

    assert result is not None and result.ok
    assert provider.calls == 1
    assert result.detail.run.cancelled is True


def test_background_check_runs_on_thread(tmp_path: Path) -> None:
    done = threading.Event()
    results: List[OperationResult] = []
    worker, _ = _worker(tmp_path, results=results)
    worker.context.subscribe(
        lambda status: done.set() if status.state is SyncState.IN_SYNC else None
    )

    worker.check_now()

    assert done.wait(5)

"""Command line front end for l10nsync."""

from __future__ import annotations

import argparse
import functools
import logging
import sys
import threading
import time
from typing import List, Optional, Sequence

import settings as settings_module
from l10nsync import tabular
from l10nsync.errors import L10nSyncError
from l10nsync.hash import local_file_hash
from l10nsync.logging_config import configure_logging, get_log_path
from l10nsync.lookup import add_entry
from l10nsync.oauth import OAuthTokenManager
from l10nsync.sheets_client import GoogleSheetsClient
from l10nsync.sync_engine import RemoteSyncEngine, SyncContext, SyncStatus
from l10nsync.sync_worker import OperationResult, SyncWorker
from l10nsync.translate_service import TranslationService


def build_worker(settings_path: str) -> SyncWorker:
    config = settings_module.load_settings(settings_path)
    save = functools.partial(settings_module.save_settings, path=settings_path)
    context = SyncContext(config, save)
    tokens = OAuthTokenManager(config, save)
    engine = RemoteSyncEngine(context, GoogleSheetsClient(), tokens)
    return SyncWorker(context, engine, tokens, TranslationService(config))


def _print_status(status: SyncStatus) -> None:
    print(f"[{status.state.value}] {status.message}")


def _finish(result: Optional[OperationResult]) -> int:
    if result is None:
        print("Another operation is running.", file=sys.stderr)
        return 1
    if not result.ok:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1
    print(result.message)
    return 0


def command_status(worker: SyncWorker, args: argparse.Namespace) -> int:
    config = worker.context.settings
    print(f"Document      : {config.document_path or 'not configured'}")
    print(f"Sheet URL     : {config.sheet_url or 'not configured'}")
    print(f"Authenticated : {'yes' if config.has_refresh_token else 'no'}")
    print(f"Last check    : {config.last_check_at or 'never'}")
    print(f"Last hash     : {config.last_known_hash or 'unknown'}")
    local_hash = local_file_hash(config.document_path) if config.document_path else None
    if local_hash is None:
        print("Local file    : missing")
    elif config.last_known_hash:
        changed = "no" if local_hash == config.last_known_hash else "yes"
        print(f"Local edits   : {changed}")
    print(f"Log file      : {get_log_path()}")
    return 0


def command_check(worker: SyncWorker, args: argparse.Namespace) -> int:
    return _finish(worker.run_check())


def command_pull(worker: SyncWorker, args: argparse.Namespace) -> int:
    if not args.yes:
        check = worker.run_check()
        if check is None or not check.ok:
            return _finish(check)
        if not worker.context.can_pull:
            print("Local file already matches the Google Sheet.")
            return 0
    return _finish(worker.run_pull())


def command_push(worker: SyncWorker, args: argparse.Namespace) -> int:
    return _finish(worker.run_push())


def command_authorize(worker: SyncWorker, args: argparse.Namespace) -> int:
    return _finish(worker.run_authorize())


def _wait(thread: threading.Thread) -> None:
    while thread.is_alive():
        thread.join(0.2)


def command_translate(worker: SyncWorker, args: argparse.Namespace) -> int:
    def show_progress(fraction: float, message: str) -> None:
        print(f"[{fraction:6.1%}] {message}")

    results: List[Optional[OperationResult]] = []
    runner = threading.Thread(target=lambda: results.append(worker.run_translate()), daemon=True)
    unsubscribe = worker.context.subscribe_progress(show_progress)
    interrupted = False
    try:
        runner.start()
        try:
            _wait(runner)
        except KeyboardInterrupt:
            # the cell in flight finishes, then the partial result is saved
            interrupted = True
            print("Stopping after the current cell...", file=sys.stderr)
            worker.stop_translation()
            _wait(runner)
    finally:
        unsubscribe()

    result = results[0] if results else None
    if result is not None and result.ok:
        for error in result.detail.run.errors:
            print(
                f"  failed: row {error.task.row_index} [{error.language}]: {error.message}",
                file=sys.stderr,
            )
    code = _finish(result)
    return 130 if interrupted else code


def command_add(worker: SyncWorker, args: argparse.Namespace) -> int:
    path = worker.context.settings.document_path
    try:
        document = tabular.read_document(path)
        row_index = add_entry(document, args.key, args.language, args.text)
        tabular.write_document(path, document)
    except L10nSyncError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Added key '{args.key}' at row {row_index}.")
    return 0


def command_watch(worker: SyncWorker, args: argparse.Namespace) -> int:
    worker.context.subscribe(_print_status)
    worker.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        worker.stop()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Keep a TSV localization file in sync with Google Sheets and translate it."
    )
    parser.add_argument(
        "--settings",
        default=settings_module.DEFAULT_SETTINGS_PATH,
        help="Path to the settings JSON file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show the stored sync state").set_defaults(func=command_status)
    subparsers.add_parser("check", help="Compare the local file with the sheet").set_defaults(
        func=command_check
    )

    pull_parser = subparsers.add_parser("pull", help="Overwrite the local file with the sheet")
    pull_parser.add_argument("--yes", action="store_true", help="Skip the preliminary check")
    pull_parser.set_defaults(func=command_pull)

    subparsers.add_parser("push", help="Overwrite the sheet with the local file").set_defaults(
        func=command_push
    )
    subparsers.add_parser("authorize", help="Authenticate with Google").set_defaults(
        func=command_authorize
    )
    subparsers.add_parser("translate", help="Fill in missing translations").set_defaults(
        func=command_translate
    )

    add_parser = subparsers.add_parser("add", help="Append a new key to the local file")
    add_parser.add_argument("key")
    add_parser.add_argument("text")
    add_parser.add_argument("--language", default="en")
    add_parser.set_defaults(func=command_add)

    subparsers.add_parser("watch", help="Check the sheet periodically").set_defaults(
        func=command_watch
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO, console=args.verbose)
    worker = build_worker(args.settings)
    return args.func(worker, args)


if __name__ == "__main__":
    sys.exit(main())

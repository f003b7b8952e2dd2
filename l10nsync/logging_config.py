"""Logging setup shared by the CLI and background workers."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from l10nsync import app_paths

LOG_FILENAME = "l10nsync.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LOG_PATH: Optional[Path] = None


def _has_file_handler(root: logging.Logger, log_path: Path) -> bool:
    target = str(log_path.resolve())
    return any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == target
        for handler in root.handlers
    )


def configure_logging(
    level: int = logging.INFO,
    path: Optional[Path] = None,
    *,
    console: bool = False,
) -> Path:
    """Send log records to ``l10nsync.log`` in the application directory.

    Calling this again is harmless: a file handler is attached once per log
    path.  ``console`` also echoes records to stderr, which the CLI enables
    with ``--verbose``.  Returns the log file path.
    """

    global _LOG_PATH

    if _LOG_PATH is not None and path is None and not console:
        return _LOG_PATH

    log_path = Path(path) if path is not None else app_paths.log_path(LOG_FILENAME)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level if not root.handlers else min(root.level, level))

    formatter = logging.Formatter(LOG_FORMAT)
    if not _has_file_handler(root, log_path):
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if console and not any(getattr(h, "_l10nsync_console", False) for h in root.handlers):
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        stream_handler.setLevel(level)
        stream_handler._l10nsync_console = True  # type: ignore[attr-defined]
        root.addHandler(stream_handler)

    _LOG_PATH = log_path
    root.debug("Logging to %s", log_path)
    return log_path


def get_log_path() -> Path:
    if _LOG_PATH is None:
        return configure_logging()
    return _LOG_PATH


__all__ = ["LOG_FILENAME", "configure_logging", "get_log_path"]

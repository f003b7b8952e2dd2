"""Where l10nsync keeps its settings and logs.

``L10NSYNC_HOME`` wins when set.  Otherwise Windows installs use
``%LOCALAPPDATA%\\L10nSync`` (or ``%APPDATA%``) and everything else uses
``~/.l10nsync``.  Nothing is created at import time.
"""
from __future__ import annotations

import os
from pathlib import Path

HOME_ENV_VAR = "L10NSYNC_HOME"
APP_FOLDER = "L10nSync"


def _detect_base_directory() -> Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    for env_var in ("LOCALAPPDATA", "APPDATA"):
        value = os.environ.get(env_var)
        if value:
            return Path(value).expanduser().resolve() / APP_FOLDER
    return Path.home().resolve() / ".l10nsync"


APP_DIR: Path = _detect_base_directory()
LOG_DIR: Path = APP_DIR / "logs"
SETTINGS_FILE: Path = APP_DIR / "settings.json"


def log_path(filename: str) -> Path:
    """Return ``LOG_DIR / filename`` after making sure ``LOG_DIR`` exists."""

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR / filename


__all__ = ["APP_DIR", "LOG_DIR", "SETTINGS_FILE", "log_path"]

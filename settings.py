"""Persisted configuration for l10nsync."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from l10nsync import app_paths
from l10nsync.translation import DEFAULT_CUSTOM_INSTRUCTIONS
from l10nsync.translator_client import DEFAULT_API_URL, DEFAULT_MODEL

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS_PATH = str(app_paths.SETTINGS_FILE)

DEFAULT_DOCUMENT_PATH = os.getenv("L10NSYNC_DOCUMENT_PATH", "")
DEFAULT_SHEET_URL = os.getenv("L10NSYNC_SHEET_URL", "")
DEFAULT_API_KEY = os.getenv("L10NSYNC_API_KEY", "")
DEFAULT_CLIENT_ID = os.getenv("L10NSYNC_CLIENT_ID", "")
DEFAULT_CLIENT_SECRET = os.getenv("L10NSYNC_CLIENT_SECRET", "")
DEFAULT_SOURCE_LANGUAGE = "English"
DEFAULT_CHECK_INTERVAL_MINUTES = 5
MIN_CHECK_INTERVAL_MINUTES = 1
MAX_CHECK_INTERVAL_MINUTES = 120


@dataclass
class LocalizationSettings:
    # Sync configuration
    document_path: str = DEFAULT_DOCUMENT_PATH
    sheet_url: str = DEFAULT_SHEET_URL
    # Google API credentials
    client_id: str = DEFAULT_CLIENT_ID
    client_secret: str = DEFAULT_CLIENT_SECRET
    refresh_token: str = ""
    # Automatic checker
    auto_check: bool = True
    check_interval_minutes: int = DEFAULT_CHECK_INTERVAL_MINUTES
    # Managed by the sync engine
    last_known_hash: str = ""
    last_check_at: str = ""
    # Translator
    source_language: str = DEFAULT_SOURCE_LANGUAGE
    api_key: str = DEFAULT_API_KEY
    api_url: str = DEFAULT_API_URL
    model: str = DEFAULT_MODEL
    custom_instructions: str = DEFAULT_CUSTOM_INSTRUCTIONS
    overwrite_original_file: bool = False

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token.strip())

    def last_check_time(self) -> Optional[datetime]:
        if not self.last_check_at:
            return None
        try:
            parsed = datetime.fromisoformat(self.last_check_at.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def mark_checked(self, when: Optional[datetime] = None) -> None:
        moment = (when or datetime.now(timezone.utc)).astimezone(timezone.utc)
        self.last_check_at = moment.replace(microsecond=0).isoformat().replace("+00:00", "Z")

    def to_json(self) -> Dict[str, object]:
        return asdict(self)


def _clamp_interval(value: Any) -> int:
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        return DEFAULT_CHECK_INTERVAL_MINUTES
    return max(MIN_CHECK_INTERVAL_MINUTES, min(MAX_CHECK_INTERVAL_MINUTES, minutes))


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "y", "on"}:
            return True
        if lowered in {"0", "false", "no", "n", "off"}:
            return False
    return default


def _ensure_settings(path: str) -> Dict[str, object]:
    default_settings = LocalizationSettings().to_json()
    if not os.path.exists(path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(default_settings, handle, indent=2)
        return dict(default_settings)

    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Settings file %s could not be read, using defaults: %s", path, exc)
        return dict(default_settings)

    merged: Dict[str, object] = dict(default_settings)
    if not isinstance(data, dict):
        return merged
    for key, value in data.items():
        if key not in merged:
            continue
        if key == "check_interval_minutes":
            merged[key] = _clamp_interval(value)
        elif isinstance(default_settings[key], bool):
            merged[key] = _coerce_bool(value, bool(default_settings[key]))
        elif isinstance(value, str):
            merged[key] = value
    return merged


def load_settings(path: str = DEFAULT_SETTINGS_PATH) -> LocalizationSettings:
    data = _ensure_settings(path)
    known = {item.name for item in fields(LocalizationSettings)}
    return LocalizationSettings(**{key: value for key, value in data.items() if key in known})


def save_settings(settings: LocalizationSettings, path: str = DEFAULT_SETTINGS_PATH) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    payload = settings.to_json()
    payload["check_interval_minutes"] = _clamp_interval(payload["check_interval_minutes"])

    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)


__all__ = [
    "DEFAULT_CHECK_INTERVAL_MINUTES",
    "DEFAULT_SETTINGS_PATH",
    "DEFAULT_SOURCE_LANGUAGE",
    "LocalizationSettings",
    "load_settings",
    "save_settings",
]

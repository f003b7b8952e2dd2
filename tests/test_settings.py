from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import settings as settings_module
from settings import LocalizationSettings, load_settings, save_settings


def test_missing_file_is_created_with_defaults(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"

    loaded = load_settings(str(path))

    assert path.exists()
    assert loaded.auto_check is True
    assert loaded.check_interval_minutes == 5
    assert loaded.source_language == "English"
    assert loaded.overwrite_original_file is False
    assert loaded.model == "gpt-3.5-turbo"


def test_round_trip_preserves_values(tmp_path: Path) -> None:
    path = str(tmp_path / "settings.json")
    original = LocalizationSettings(
        document_path="/data/strings.tsv",
        sheet_url="https://docs.google.com/spreadsheets/d/abc/edit#gid=3",
        refresh_token="refresh",
        auto_check=False,
        check_interval_minutes=30,
        last_known_hash="ff" * 32,
    )

    save_settings(original, path)
    loaded = load_settings(path)

    assert loaded == original


def test_interval_is_clamped(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"check_interval_minutes": 500}), encoding="utf-8")
    assert load_settings(str(path)).check_interval_minutes == 120

    path.write_text(json.dumps({"check_interval_minutes": 0}), encoding="utf-8")
    assert load_settings(str(path)).check_interval_minutes == 1

    path.write_text(json.dumps({"check_interval_minutes": "soon"}), encoding="utf-8")
    assert load_settings(str(path)).check_interval_minutes == 5


def test_boolean_strings_are_coerced(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"auto_check": "off", "overwrite_original_file": "yes"}), encoding="utf-8"
    )

    loaded = load_settings(str(path))

    assert loaded.auto_check is False
    assert loaded.overwrite_original_file is True


def test_unknown_keys_and_bad_json_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"legacy": 1, "sheet_url": "u"}), encoding="utf-8")
    assert load_settings(str(path)).sheet_url == "u"

    path.write_text("{not json", encoding="utf-8")
    assert load_settings(str(path)).check_interval_minutes == settings_module.DEFAULT_CHECK_INTERVAL_MINUTES


def test_mark_checked_round_trips_through_iso_text() -> None:
    config = LocalizationSettings()
    moment = datetime(2024, 3, 1, 8, 30, 15, 999, tzinfo=timezone.utc)

    assert config.last_check_time() is None
    config.mark_checked(moment)

    assert config.last_check_at == "2024-03-01T08:30:15Z"
    assert config.last_check_time() == moment.replace(microsecond=0)


def test_unparsable_timestamp_reads_as_never() -> None:
    assert LocalizationSettings(last_check_at="yesterday").last_check_time() is None

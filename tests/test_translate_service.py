from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import List, Tuple

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from l10nsync import tabular
from l10nsync.errors import ParseError, ProviderError, ValidationError
from l10nsync.hash import text_sha256
from l10nsync.translate_service import TranslationService, output_path_for
from settings import LocalizationSettings


class _RecordingProvider:
    def __init__(self, fail_on: str = "") -> None:
        self.fail_on = fail_on
        self.calls: List[Tuple[str, str]] = []

    def translate(self, text: str, target_language: str, system_instructions: str) -> str:
        self.calls.append((text, target_language))
        if target_language == self.fail_on:
            raise ProviderError("quota exceeded")
        return f"[{target_language}] {text}"


def _settings(path: Path, **overrides) -> LocalizationSettings:
    values = dict(document_path=str(path), source_language="English", api_key="")
    values.update(overrides)
    return LocalizationSettings(**values)


def _write(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")


def test_output_path_for_modified_copy() -> None:
    assert output_path_for(Path("/data/strings.tsv"), True) == Path("/data/strings.tsv")
    assert output_path_for(Path("/data/strings.tsv"), False) == Path("/data/strings_modified.tsv")


def test_translate_file_writes_modified_copy(tmp_path: Path) -> None:
    source = tmp_path / "strings.tsv"
    _write(source, "key\ten\tfr\tde\ngreeting\tHello\t\tHallo\n")
    original = source.read_bytes()
    provider = _RecordingProvider()

    outcome = TranslationService(_settings(source), provider=provider).translate_file()

    assert source.read_bytes() == original
    assert outcome.saved_path == tmp_path / "strings_modified.tsv"
    document = tabular.read_document(outcome.saved_path)
    header = document.header
    row = document.rows[1]
    assert header[-1] == "sourceHash"
    assert row[header.index("fr")] == "[fr] Hello"
    assert row[header.index("sourceHash")] == text_sha256("Hello")
    # first run has no stored hashes so every translated row starts over
    assert ("Hello", "de") in provider.calls


def test_translate_file_overwrites_when_configured(tmp_path: Path) -> None:
    source = tmp_path / "strings.tsv"
    _write(source, "key\ten\tfr\ngreeting\tHello\t\n")

    outcome = TranslationService(
        _settings(source, overwrite_original_file=True), provider=_RecordingProvider()
    ).translate_file()

    assert outcome.saved_path == source
    assert "[fr] Hello" in source.read_text(encoding="utf-8")


def test_second_run_has_nothing_to_do(tmp_path: Path) -> None:
    source = tmp_path / "strings.tsv"
    _write(source, "key\ten\tfr\ngreeting\tHello\t\n")
    settings = _settings(source, overwrite_original_file=True)
    TranslationService(settings, provider=_RecordingProvider()).translate_file()
    before = source.read_bytes()
    provider = _RecordingProvider()

    outcome = TranslationService(settings, provider=provider).translate_file()

    assert outcome.run.nothing_to_do is True
    assert outcome.saved_path is None
    assert provider.calls == []
    assert source.read_bytes() == before


def test_changed_source_retranslates_only_that_row(tmp_path: Path) -> None:
    source = tmp_path / "strings.tsv"
    hello = text_sha256("Hello")
    bye = text_sha256("Bye")
    _write(
        source,
        "key\ten\tfr\tsourceHash\n"
        f"greeting\tHello there\tBonjour\t{hello}\n"
        f"farewell\tBye\tAu revoir\t{bye}\n",
    )
    provider = _RecordingProvider()

    outcome = TranslationService(
        _settings(source, overwrite_original_file=True), provider=provider
    ).translate_file()

    assert outcome.staleness.stale_count == 1
    assert outcome.staleness.stale_keys == ["greeting"]
    assert provider.calls == [("Hello there", "fr")]
    text = source.read_text(encoding="utf-8")
    assert "Au revoir" in text
    assert "[fr] Hello there" in text


def test_failed_cells_stay_empty_and_others_are_saved(tmp_path: Path) -> None:
    source = tmp_path / "strings.tsv"
    _write(source, "key\ten\tfr\tde\ngreeting\tHello\t\t\n")

    outcome = TranslationService(
        _settings(source, overwrite_original_file=True),
        provider=_RecordingProvider(fail_on="de"),
    ).translate_file()

    assert outcome.run.succeeded == 1
    assert outcome.run.failed == 1
    assert outcome.run.errors[0].language == "de"
    assert "1 failed" in outcome.message
    document = tabular.read_document(source)
    row = document.rows[1]
    assert row[document.column_index("fr")] == "[fr] Hello"
    assert row[document.column_index("de")] == ""


def test_cancelled_run_keeps_partial_results(tmp_path: Path) -> None:
    source = tmp_path / "strings.tsv"
    _write(source, "key\ten\tfr\tde\ngreeting\tHello\t\t\n")
    cancel = threading.Event()

    class _CancellingProvider:
        def translate(self, text: str, target_language: str, system_instructions: str) -> str:
            cancel.set()
            return "Bonjour"

    outcome = TranslationService(
        _settings(source, overwrite_original_file=True), provider=_CancellingProvider()
    ).translate_file(cancel_event=cancel)

    assert outcome.run.cancelled is True
    assert outcome.run.succeeded == 1
    assert "Bonjour" in source.read_text(encoding="utf-8")


def test_unknown_source_language_fails_before_mutation(tmp_path: Path) -> None:
    source = tmp_path / "strings.tsv"
    _write(source, "key\ten\tfr\ngreeting\tHello\t\n")
    before = source.read_bytes()

    with pytest.raises(ValidationError):
        TranslationService(
            _settings(source, source_language="Portuguese", overwrite_original_file=True),
            provider=_RecordingProvider(),
        ).translate_file()

    assert source.read_bytes() == before


def test_missing_api_key_fails_before_mutation(tmp_path: Path) -> None:
    source = tmp_path / "strings.tsv"
    _write(source, "key\ten\tfr\ngreeting\tHello\t\n")
    before = source.read_bytes()

    with pytest.raises(ValidationError):
        TranslationService(_settings(source, overwrite_original_file=True)).translate_file()

    assert source.read_bytes() == before


def test_empty_file_is_nothing_to_do(tmp_path: Path) -> None:
    source = tmp_path / "strings.tsv"
    _write(source, "")

    outcome = TranslationService(_settings(source), provider=_RecordingProvider()).translate_file()

    assert outcome.run.nothing_to_do is True
    assert outcome.saved_path is None


def test_missing_path_and_file_are_reported(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        TranslationService(
            _settings(tmp_path, document_path=""), provider=_RecordingProvider()
        ).translate_file()

    with pytest.raises(ParseError):
        TranslationService(
            _settings(tmp_path / "missing.tsv"), provider=_RecordingProvider()
        ).translate_file()

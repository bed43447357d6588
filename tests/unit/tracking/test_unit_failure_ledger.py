# tests/unit/tracking/test_failure_ledger.py — v1
"""Tests for tracking/failure_ledger.py — JSON + Markdown failure report."""

from __future__ import annotations

import json

import pytest

from i18ndiff.core.models import TranslationResult
from i18ndiff.tracking.failure_ledger import (
    FailureLedger,
    FailureRecord,
    count_by_language,
    group_by_file_and_lang,
    render_markdown,
)


@pytest.fixture
def ledger(tmp_path):
    return FailureLedger(tmp_path / ".i18n-diff-failures.json")


def _record(key="a", lang="fr", file_path="common.json", source="Hello", error="boom"):
    return FailureRecord(
        key=key, source_text=source, target_lang=lang, file_path=file_path,
        error=error, timestamp="2026-01-01T00:00:00+00:00",
    )


class TestRecording:
    def test_record_failure(self, ledger, make_task):
        ledger.record_failure(make_task("a", "Hello"), "boom", prompt="P", response="R")
        assert ledger.failure_count == 1
        failure = ledger.failures[0]
        assert failure.key == "a"
        assert failure.error == "boom"
        # Prompt and response are only kept in verbose mode.
        assert failure.prompt is None
        assert failure.response is None

    def test_verbose_keeps_prompt(self, ledger, make_task):
        ledger.verbose = True
        ledger.record_failure(make_task("a", "Hello"), "boom", prompt="P", response="R")
        assert ledger.failures[0].prompt == "P"
        assert ledger.failures[0].response == "R"

    def test_record_results_only_failures(self, ledger, make_task):
        tasks = [make_task("a", "Hello"), make_task("b", "Bye")]
        results = [
            TranslationResult(key="a", translated_text="Bonjour", target_lang="fr", success=True),
            TranslationResult(key="b", target_lang="fr", success=False, error="missing"),
        ]
        assert ledger.record_results(results, tasks) == 1
        assert ledger.failures[0].key == "b"
        assert ledger.failures[0].error == "missing"

    def test_clear(self, ledger, make_task):
        ledger.record_failure(make_task("a", "Hello"), "boom")
        ledger.clear()
        assert ledger.failure_count == 0


class TestSave:
    def test_nothing_to_save(self, ledger):
        ledger.save()
        assert not ledger.path.exists()

    def test_writes_json_and_markdown(self, ledger, make_task):
        ledger.record_failure(make_task("a", "Hello"), "boom")
        ledger.record_failure(make_task("b", "Hallo", lang="de"), "bad")
        ledger.save()

        data = json.loads(ledger.path.read_text(encoding="utf-8"))
        assert data["summary"]["totalFailures"] == 2
        assert data["summary"]["byLanguage"] == {"fr": 1, "de": 1}
        assert "lastUpdated" in data["summary"]
        assert [f["key"] for f in data["failures"]] == ["a", "b"]
        assert set(data["grouped"]["common.json"]) == {"fr", "de"}

        assert ledger.markdown_path.suffix == ".md"
        markdown = ledger.markdown_path.read_text(encoding="utf-8")
        assert "## common.json (fr)" in markdown
        assert "## common.json (de)" in markdown

    def test_merges_and_dedups_with_existing(self, tmp_path, make_task):
        path = tmp_path / "failures.json"
        first = FailureLedger(path)
        first.record_failure(make_task("a", "Hello"), "boom")
        first.save()

        second = FailureLedger(path)
        second.record_failure(make_task("a", "Hello"), "boom again")
        second.record_failure(make_task("b", "Bye"), "other")
        second.save()

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["summary"]["totalFailures"] == 2
        assert [f["key"] for f in data["failures"]] == ["a", "b"]
        assert data["failures"][0]["error"] == "boom"

    def test_corrupt_existing_report_ignored(self, ledger, make_task):
        ledger.path.write_text("not json", encoding="utf-8")
        ledger.record_failure(make_task("a", "Hello"), "boom")
        ledger.save()
        data = json.loads(ledger.path.read_text(encoding="utf-8"))
        assert data["summary"]["totalFailures"] == 1


class TestHelpers:
    def test_dedup_key(self):
        assert _record().dedup_key == "a:fr:common.json"

    def test_group_by_file_and_lang(self):
        grouped = group_by_file_and_lang([
            _record("a"), _record("b", lang="de"), _record("c", file_path="x.json"),
        ])
        assert list(grouped) == ["common.json", "x.json"]
        assert [r.key for r in grouped["common.json"]["fr"]] == ["a"]

    def test_count_by_language(self):
        assert count_by_language([_record(), _record("b"), _record(lang="de")]) == {"fr": 2, "de": 1}

    def test_markdown_truncates_and_escapes(self):
        markdown = render_markdown([
            _record(source="x" * 80, error="pipe | in error\nsecond line " + "e" * 200),
        ])
        row = next(line for line in markdown.splitlines() if line.startswith("| a "))
        assert "x" * 50 in row
        assert "x" * 51 not in row
        assert "pipe \\| in error second line" in row
        assert "e" * 200 not in row

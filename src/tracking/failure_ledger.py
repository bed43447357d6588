# src/tracking/failure_ledger.py — v1
"""Per-key translation failure ledger.

Failures accumulate in memory during a run. ``save()`` merges them into
the existing JSON report (deduplicated on key, language and file) and
regenerates a Markdown table next to it.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ValidationError

from i18ndiff.core.models import TranslationResult, TranslationTask

logger = logging.getLogger(__name__)

_SOURCE_PREVIEW = 50
_ERROR_PREVIEW = 100


class FailureRecord(BaseModel):
    """One failed key."""

    key: str
    source_text: str
    target_lang: str
    file_path: str
    error: str
    timestamp: str
    prompt: str | None = None
    response: str | None = None

    @property
    def dedup_key(self) -> str:
        return f"{self.key}:{self.target_lang}:{self.file_path}"


class FailureLedger:
    """Collect failures across a run and persist a readable report."""

    def __init__(self, path: Path | str = ".i18n-diff-failures.json", verbose: bool = False):
        self._path = Path(path).expanduser().resolve()
        self._verbose = verbose
        self._failures: list[FailureRecord] = []

    @property
    def path(self) -> Path:
        return self._path

    @property
    def markdown_path(self) -> Path:
        return self._path.with_suffix(".md")

    @property
    def verbose(self) -> bool:
        return self._verbose

    @verbose.setter
    def verbose(self, value: bool) -> None:
        self._verbose = value

    def record_failure(
        self,
        task: TranslationTask,
        error: str,
        prompt: str | None = None,
        response: str | None = None,
    ) -> None:
        """Record one failed task. Prompt/response are kept in verbose mode only."""
        self._failures.append(FailureRecord(
            key=task.key,
            source_text=task.source_text,
            target_lang=task.target_lang,
            file_path=task.file_path,
            error=error,
            timestamp=datetime.now(timezone.utc).isoformat(),
            prompt=prompt if self._verbose else None,
            response=response if self._verbose else None,
        ))

    def record_results(
        self,
        results: list[TranslationResult],
        tasks: list[TranslationTask],
        prompt: str | None = None,
        response: str | None = None,
    ) -> int:
        """Record every unsuccessful result. Returns the number recorded."""
        by_key = {t.key: t for t in tasks}
        recorded = 0
        for result in results:
            task = by_key.get(result.key)
            if not result.success and task is not None:
                self.record_failure(task, result.error or "Unknown error", prompt, response)
                recorded += 1
        return recorded

    @property
    def failure_count(self) -> int:
        return len(self._failures)

    @property
    def failures(self) -> list[FailureRecord]:
        return list(self._failures)

    def clear(self) -> None:
        self._failures = []

    def save(self) -> None:
        """Merge with the existing report and write JSON + Markdown."""
        if not self._failures:
            return

        existing = self._read_existing()
        seen = {f.dedup_key for f in existing}
        merged = list(existing)
        for failure in self._failures:
            if failure.dedup_key not in seen:
                seen.add(failure.dedup_key)
                merged.append(failure)

        grouped = group_by_file_and_lang(merged)
        payload = {
            "summary": {
                "totalFailures": len(merged),
                "lastUpdated": datetime.now(timezone.utc).isoformat(),
                "byLanguage": count_by_language(merged),
            },
            "failures": [f.model_dump(exclude_none=True) for f in merged],
            "grouped": {
                file_path: {
                    lang: [f.model_dump(exclude_none=True) for f in records]
                    for lang, records in langs.items()
                }
                for file_path, langs in grouped.items()
            },
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            self.markdown_path.write_text(render_markdown(merged), encoding="utf-8")
        except OSError:
            logger.exception("Failed to save failure log %s", self._path)

    def _read_existing(self) -> list[FailureRecord]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return [FailureRecord(**item) for item in data.get("failures", [])]
        except (OSError, json.JSONDecodeError, AttributeError, TypeError, ValidationError) as e:
            logger.warning("Ignoring unreadable failure log %s: %s", self._path, e)
            return []


def group_by_file_and_lang(
    failures: list[FailureRecord],
) -> dict[str, dict[str, list[FailureRecord]]]:
    grouped: dict[str, dict[str, list[FailureRecord]]] = {}
    for failure in failures:
        grouped.setdefault(failure.file_path, {}).setdefault(failure.target_lang, []).append(failure)
    return grouped


def count_by_language(failures: list[FailureRecord]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for failure in failures:
        counts[failure.target_lang] = counts.get(failure.target_lang, 0) + 1
    return counts


def _cell(text: str, limit: int | None = None) -> str:
    text = text if limit is None else text[:limit]
    return text.replace("|", "\\|").replace("\n", " ")


def render_markdown(failures: list[FailureRecord]) -> str:
    """Markdown report grouped by file and language."""
    lines = [
        "# i18n Translation Failure Report",
        "",
        f"Generated: {datetime.now(timezone.utc).isoformat()}",
        f"Total failures: {len(failures)}",
        "",
        "---",
        "",
    ]
    for file_path, langs in group_by_file_and_lang(failures).items():
        for lang, records in langs.items():
            lines += [f"## {file_path} ({lang})", ""]
            lines += ["| Key | Source Text | Error |", "|----|------|---------|"]
            for r in records:
                lines.append(
                    f"| {_cell(r.key)} "
                    f"| {_cell(r.source_text, _SOURCE_PREVIEW)} "
                    f"| {_cell(r.error, _ERROR_PREVIEW)} |"
                )
            lines.append("")
    lines += [
        "---",
        "",
        "## Manual Fix",
        "",
        "Add translations for these keys in the target language files, "
        "or run the sync again to retry them.",
        "",
    ]
    return "\n".join(lines)

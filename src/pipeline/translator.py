# src/pipeline/translator.py — v3
"""Sync engine: diff -> cache lookup -> batched translation -> merge -> write.

Each (file, target language) pair runs its own pipeline; pairs run
concurrently and only outbound requests are throttled, through the
shared semaphore inside BatchTranslator. The cache and snapshot stores
are explicit objects owned by the engine and saved once per pass.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Any

from tqdm import tqdm

from i18ndiff.batch.scanner import LocaleScanner
from i18ndiff.cache.base_cache_store import BaseTranslationCache
from i18ndiff.cache.fingerprint import cache_key
from i18ndiff.cache.json_store import SAVED_TOKENS_PER_HIT, JsonTranslationCache
from i18ndiff.cache.models import CacheStats
from i18ndiff.cache.snapshot_store import SnapshotStore
from i18ndiff.config.settings import Settings
from i18ndiff.core.diff_analyzer import analyze_diff
from i18ndiff.core.json_tree import flatten, read_json_tree, write_json_tree
from i18ndiff.core.merger import merge_translations
from i18ndiff.core.models import FileProcessResult, TranslationStats, TranslationTask
from i18ndiff.llm.base_client import BaseLLMClient
from i18ndiff.llm.batch_translator import BatchTranslator
from i18ndiff.llm.client_factory import create_from_settings
from i18ndiff.llm.retry import RetryPolicy
from i18ndiff.llm.token_budget import batch_tasks_by_token_limit
from i18ndiff.logging.context import set_file_context, set_run_context
from i18ndiff.tracking.failure_ledger import FailureLedger

logger = logging.getLogger(__name__)

# (translated text, error) published to pipelines awaiting the same source.
_Outcome = tuple[str | None, str | None]


class FileSyncError(Exception):
    """A single file could not be synchronized."""


class Translator:
    """Incremental translation engine for a locales tree."""

    def __init__(
        self,
        settings: Settings,
        client: BaseLLMClient | None = None,
        cache: BaseTranslationCache | None = None,
        snapshot: SnapshotStore | None = None,
        ledger: FailureLedger | None = None,
        scanner: LocaleScanner | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or create_from_settings(settings)
        self._cache = cache or JsonTranslationCache(settings.cache_path)
        self._snapshot = snapshot or SnapshotStore(settings.cache_path)
        self._ledger = ledger or FailureLedger(settings.failure_log_path)
        self._scanner = scanner or LocaleScanner()
        self._batcher = BatchTranslator(
            self._client,
            concurrency=settings.concurrency,
            policy=RetryPolicy(max_attempts=settings.llm_retries),
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
        self._force = False
        self._tokens_used = 0
        self._inflight: dict[str, asyncio.Future[_Outcome]] = {}

    @property
    def cache(self) -> BaseTranslationCache:
        return self._cache

    @property
    def snapshot(self) -> SnapshotStore:
        return self._snapshot

    @property
    def ledger(self) -> FailureLedger:
        return self._ledger

    @property
    def request_count(self) -> int:
        """Outbound batch requests issued so far."""
        return self._batcher.request_count

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Load the cache and snapshot stores."""
        await self._cache.load()
        await self._snapshot.load()
        if getattr(self._cache, "version_reset", False):
            logger.info("Cache was invalidated, resetting snapshot")
            self._snapshot.reset()

    def set_force(self, force: bool = True) -> None:
        """Retranslate every unskipped key. Enabling clears cache and snapshot."""
        self._force = force
        if force:
            self._cache.clear()
            self._snapshot.reset()

    def set_verbose(self, verbose: bool) -> None:
        """Keep prompts and raw responses in the failure report."""
        self._ledger.verbose = verbose

    async def save_state(self) -> None:
        """Persist cache, snapshot and the failure report."""
        await self._cache.save()
        await self._snapshot.save()
        failures = self._ledger.failure_count
        if failures:
            self._ledger.save()
            logger.warning(
                "%d keys failed, see %s", failures, self._ledger.markdown_path,
            )
            self._ledger.clear()

    async def clear_cache(self) -> None:
        self._cache.clear()
        await self._cache.save()

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    # --- Runs ---

    def list_jobs(self) -> list[tuple[str, str]]:
        """All (relative file path, target language) pairs to process."""
        files = self._scanner.scan(self._settings.base_dir)
        return [(rel, lang) for rel in files for lang in self._settings.target_langs]

    async def translate_all(self, progress: bool = True) -> TranslationStats:
        """Run one full pass over every base file and target language."""
        t0 = time.perf_counter()
        tokens_before = self._tokens_used
        set_run_context(uuid.uuid4().hex[:8])

        jobs = self.list_jobs()
        stats = TranslationStats(total_files=len(jobs))
        if not jobs:
            logger.info("No files to translate")
            return stats

        logger.info("Found %d target files to process", len(jobs))
        bar = tqdm(total=len(jobs), desc="Translating", unit="file", disable=not progress)

        async def run_one(relative_path: str, target_lang: str) -> FileProcessResult:
            result = await self.translate_file(relative_path, target_lang)
            bar.update(1)
            return result

        try:
            results = await asyncio.gather(*(run_one(rel, lang) for rel, lang in jobs))
        finally:
            bar.close()

        for result in results:
            if result.success:
                stats.success_files += 1
                stats.total_added += result.added
                stats.total_updated += result.updated
                stats.total_skipped += result.skipped
                stats.total_removed += result.removed
            else:
                stats.failed_files += 1
            stats.total_failed_keys += result.failed_keys
            stats.cache_hits += result.cache_hits

        await self.save_state()

        stats.estimated_saved_tokens = stats.cache_hits * SAVED_TOKENS_PER_HIT
        stats.actual_used_tokens = self._tokens_used - tokens_before
        stats.duration_seconds = round(time.perf_counter() - t0, 2)
        return stats

    async def translate_file(self, relative_path: str, target_lang: str) -> FileProcessResult:
        """Synchronize one target-language file with its base file.

        Never raises: any error becomes a failed FileProcessResult.
        """
        set_file_context(target_lang, relative_path)
        result = FileProcessResult(file_path=relative_path, target_lang=target_lang)
        base_file = self._settings.base_dir / relative_path
        target_file = self._settings.target_dir(target_lang) / relative_path

        try:
            try:
                base = read_json_tree(base_file)
            except (OSError, ValueError) as e:
                raise FileSyncError(f"Failed to read base file: {base_file} - {e}") from e
            target = _read_target(target_file)

            diff = analyze_diff(
                base,
                target,
                self._settings.skip_keys,
                file_path=relative_path,
                target_lang=target_lang,
                snapshot=self._snapshot,
                force=self._force,
            )
            result.added = len(diff.added)
            result.updated = len(diff.modified)
            result.skipped = len(diff.skipped)
            result.removed = len(diff.removed)

            base_flat = flatten(base)
            for key in diff.unchanged:
                self._snapshot.update(relative_path, target_lang, key, base_flat[key])
            if diff.removed:
                self._snapshot.remove(relative_path, target_lang, diff.removed)

            translations: dict[str, str] = {}
            if diff.has_work:
                tasks = [
                    TranslationTask(
                        key=key,
                        source_text=base_flat[key],
                        target_lang=target_lang,
                        file_path=relative_path,
                    )
                    for key in diff.pending
                ]
                translations, result.cache_hits = await self._execute_translations(tasks)
                result.failed_keys = len(tasks) - len(translations)
                for task in tasks:
                    if task.key in translations:
                        self._snapshot.update(
                            relative_path, target_lang, task.key, task.source_text
                        )

            merged = merge_translations(base, target, translations, diff.skipped)
            if merged != target:
                write_json_tree(target_file, merged)
                result.written = True

            result.success = True
            logger.debug(
                "+%d ~%d skip %d -%d (cache %d, failed %d)",
                result.added, result.updated, result.skipped, result.removed,
                result.cache_hits, result.failed_keys,
            )
        except Exception as e:
            result.error = str(e)
            logger.error("Failed to sync %s/%s: %s", target_lang, relative_path, e)

        return result

    async def _execute_translations(
        self, tasks: list[TranslationTask],
    ) -> tuple[dict[str, str], int]:
        """Resolve tasks from cache, then translate the rest in batches.

        Returns ``({key: translated_text}, cache_hits)``. Failed keys are
        absent from the mapping and recorded in the ledger. A source text
        already being translated by another file pipeline is awaited
        instead of requested again, and counts as a cache hit.
        """
        resolved: dict[str, str] = {}
        hits = 0
        # Identical source texts in one file share a single request slot.
        pending: dict[str, list[TranslationTask]] = {}

        for task in tasks:
            if not task.source_text.strip():
                resolved[task.key] = task.source_text
                continue
            cached = self._cache.get(task.source_text, task.target_lang)
            if cached is not None:
                resolved[task.key] = cached
                hits += 1
                continue
            pending.setdefault(task.source_text, []).append(task)

        if not pending:
            return resolved, hits

        owned: dict[str, asyncio.Future[_Outcome]] = {}
        shared: dict[str, asyncio.Future[_Outcome]] = {}
        loop = asyncio.get_running_loop()
        for source, group in pending.items():
            fp = cache_key(source, group[0].target_lang)
            if fp in self._inflight:
                shared[source] = self._inflight[fp]
            else:
                owned[source] = self._inflight[fp] = loop.create_future()

        unique = [pending[source][0] for source in owned]
        logger.info(
            "%d keys to translate, %d unique texts (%d cached, %d in flight)",
            sum(len(g) for g in pending.values()), len(unique), hits, len(shared),
        )

        try:
            if unique:
                await self._translate_unique(unique, pending, owned, resolved)
        finally:
            for source, future in owned.items():
                _publish(future, None, "Translation request aborted")
                self._inflight.pop(cache_key(source, pending[source][0].target_lang), None)

        for source, future in shared.items():
            text, error = await future
            group = pending[source]
            if text is not None:
                hits += len(group)
                for member in group:
                    resolved[member.key] = text
            else:
                for member in group:
                    self._ledger.record_failure(member, error or "Unknown error")

        return resolved, hits

    async def _translate_unique(
        self,
        unique: list[TranslationTask],
        pending: dict[str, list[TranslationTask]],
        owned: dict[str, asyncio.Future[_Outcome]],
        resolved: dict[str, str],
    ) -> None:
        batches = batch_tasks_by_token_limit(
            unique,
            max_tokens=self._settings.batch_token_limit,
            max_tasks=self._settings.batch_size,
        )
        outcomes = await asyncio.gather(
            *(self._batcher.translate_batch(batch) for batch in batches)
        )

        for batch, outcome in zip(batches, outcomes):
            self._tokens_used += outcome.input_tokens + outcome.output_tokens
            by_key = {t.key: t for t in batch}
            for res in outcome.results:
                task = by_key[res.key]
                group = pending[task.source_text]
                if res.success:
                    self._cache.set(
                        task.source_text, res.translated_text,
                        task.target_lang, self._batcher.model,
                    )
                    for member in group:
                        resolved[member.key] = res.translated_text
                    _publish(owned[task.source_text], res.translated_text, None)
                else:
                    logger.warning("%s: %s", res.key, res.error)
                    for member in group:
                        self._ledger.record_failure(
                            member, res.error or "Unknown error",
                            outcome.prompt, outcome.response,
                        )
                    _publish(owned[task.source_text], None, res.error)


def _publish(future: asyncio.Future[_Outcome], text: str | None, error: str | None) -> None:
    if not future.done():
        future.set_result((text, error))


def _read_target(path: Path) -> dict[str, Any] | None:
    """Read the target file; missing or unreadable files count as absent."""
    if not path.exists():
        return None
    try:
        return read_json_tree(path)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable target file %s: %s", path, e)
        return None

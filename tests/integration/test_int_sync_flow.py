# tests/integration/test_int_sync_flow.py — v2
"""Integration tests: full sync passes over a real temp locales tree.

Everything below the LLM client is real: scanner, diff, cache and
snapshot stores on disk, batching, parsing, merge and write-back.
"""

from __future__ import annotations

import json

import pytest

from fakes import FakeLLMClient, prompt_inputs, read_json, write_json
from i18ndiff.cache.fingerprint import text_hash
from i18ndiff.llm.token_budget import batch_tasks_by_token_limit
from i18ndiff.pipeline.translator import Translator


async def _run(settings, client):
    """One CLI-like pass: fresh engine, load state, translate everything."""
    translator = Translator(settings, client=client)
    await translator.initialize()
    stats = await translator.translate_all(progress=False)
    return translator, stats


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_worked_example(self, settings, tmp_path):
        write_json(settings.base_dir / "app.json", {"a": {"b": "Hello"}})
        client = FakeLLMClient(responder=lambda _p: '{"T1":"Bonjour"}')

        translator, stats = await _run(settings, client)

        assert stats.total_added == 1
        assert client.sent_sources() == ["Hello"]
        assert prompt_inputs(client.prompts[0])[0] == "fr"
        assert read_json(settings.target_dir("fr") / "app.json") == {"a": {"b": "Bonjour"}}
        assert translator.snapshot.get("app.json", "fr", "a.b") == text_hash("Hello")

    @pytest.mark.asyncio
    async def test_idempotent_second_run(self, make_settings, locales_dir):
        settings = make_settings(target_langs=["fr", "de"])
        client = FakeLLMClient()
        await _run(settings, client)
        first_calls = client.call_count

        _, stats = await _run(settings, client)
        assert stats.total_added == 0
        assert stats.total_updated == 0
        assert client.call_count == first_calls

    @pytest.mark.asyncio
    async def test_unchanged_run_leaves_files_untouched(self, settings, locales_dir):
        client = FakeLLMClient()
        await _run(settings, client)
        target = settings.target_dir("fr") / "common.json"
        before = target.stat().st_mtime_ns

        translator = Translator(settings, client=client)
        await translator.initialize()
        result = await translator.translate_file("common.json", "fr")
        assert result.written is False
        assert target.stat().st_mtime_ns == before


class TestSkipInvariance:
    @pytest.mark.asyncio
    async def test_skipped_key_always_source(self, make_settings, locales_dir):
        settings = make_settings(skip_keys=["common.hello"])
        write_json(settings.target_dir("fr") / "common.json", {
            "common": {"hello": "Salut (manual)", "bye": "Au revoir"},
        })
        client = FakeLLMClient()
        # Even a cached translation for the skipped text must not be used.
        translator = Translator(settings, client=client)
        await translator.initialize()
        translator.cache.set("Hello", "Bonjour", "fr", "m")
        stats = await translator.translate_all(progress=False)

        assert stats.total_skipped == 1
        assert "Hello" not in client.sent_sources()
        assert read_json(settings.target_dir("fr") / "common.json")["common"]["hello"] == "Hello"


class TestDeletionPropagation:
    @pytest.mark.asyncio
    async def test_removed_base_key_removed_from_target(self, settings, locales_dir):
        client = FakeLLMClient()
        await _run(settings, client)

        write_json(settings.base_dir / "common.json", {"common": {"hello": "Hello"}})
        translator, stats = await _run(settings, client)

        assert stats.total_removed == 1
        assert read_json(settings.target_dir("fr") / "common.json") == {
            "common": {"hello": "[fr] Hello"},
        }
        assert translator.snapshot.get("common.json", "fr", "common.bye") is None


class TestSnapshotDrivenRetranslation:
    @pytest.mark.asyncio
    async def test_source_edit_retranslates_despite_existing_translation(self, settings, locales_dir):
        write_json(settings.base_dir / "common.json", {"greeting": "Hello"})
        write_json(settings.target_dir("fr") / "common.json", {"greeting": "Bonjour"})
        client = FakeLLMClient()

        # First pass records the snapshot for the existing translation.
        _, stats = await _run(settings, client)
        assert stats.total_added == 0
        assert client.call_count == 0

        write_json(settings.base_dir / "common.json", {"greeting": "Hi"})
        _, stats = await _run(settings, client)

        assert stats.total_updated == 1
        assert client.sent_sources() == ["Hi"]
        assert read_json(settings.target_dir("fr") / "common.json") == {"greeting": "[fr] Hi"}


class TestCacheDedup:
    @pytest.mark.asyncio
    async def test_identical_sources_one_request(self, settings, tmp_path):
        write_json(settings.base_dir / "buttons.json", {"save": "Save", "actions": {"save": "Save"}})
        client = FakeLLMClient()
        await _run(settings, client)

        assert client.sent_sources() == ["Save"]
        assert read_json(settings.target_dir("fr") / "buttons.json") == {
            "save": "[fr] Save", "actions": {"save": "[fr] Save"},
        }

    @pytest.mark.asyncio
    async def test_shared_source_across_files_one_request(self, settings, tmp_path):
        write_json(settings.base_dir / "a.json", {"save": "Save"})
        write_json(settings.base_dir / "b.json", {"store": "Save"})
        client = FakeLLMClient()
        _, stats = await _run(settings, client)

        assert client.call_count == 1
        assert stats.cache_hits == 1
        assert read_json(settings.target_dir("fr") / "a.json") == {"save": "[fr] Save"}
        assert read_json(settings.target_dir("fr") / "b.json") == {"store": "[fr] Save"}

    @pytest.mark.asyncio
    async def test_shared_source_failure_reaches_every_file(self, settings, tmp_path):
        write_json(settings.base_dir / "a.json", {"save": "Save"})
        write_json(settings.base_dir / "b.json", {"store": "Save"})
        client = FakeLLMClient(responder=lambda _p: ValueError("service rejected request"))
        _, stats = await _run(settings, client)

        assert client.call_count == 1
        assert stats.total_failed_keys == 2
        assert stats.cache_hits == 0
        report = json.loads(settings.failure_log_path.read_text(encoding="utf-8"))
        assert sorted(f["file_path"] for f in report["failures"]) == ["a.json", "b.json"]

    @pytest.mark.asyncio
    async def test_cache_reused_across_runs(self, settings, tmp_path):
        write_json(settings.base_dir / "a.json", {"save": "Save"})
        client = FakeLLMClient()
        await _run(settings, client)

        write_json(settings.base_dir / "b.json", {"store": "Save"})
        _, stats = await _run(settings, client)

        assert client.call_count == 1
        assert stats.cache_hits == 1
        assert read_json(settings.target_dir("fr") / "b.json") == {"store": "[fr] Save"}

    @pytest.mark.asyncio
    async def test_cache_persisted_on_disk(self, settings, locales_dir):
        await _run(settings, FakeLLMClient())
        data = json.loads(settings.cache_path.read_text(encoding="utf-8"))
        sources = {e["sourceText"] for e in data["entries"].values()}
        assert sources == {"Hello", "Goodbye"}


class TestFailureRecovery:
    @pytest.mark.asyncio
    async def test_failed_keys_retried_next_run(self, settings, locales_dir):
        failing = FakeLLMClient(responder=lambda _p: ValueError("service rejected request"))
        _, stats = await _run(settings, failing)
        assert stats.total_failed_keys == 2
        assert settings.failure_log_path.exists()

        healthy = FakeLLMClient()
        _, stats = await _run(settings, healthy)
        assert stats.total_failed_keys == 0
        assert sorted(healthy.sent_sources()) == ["Goodbye", "Hello"]
        assert read_json(settings.target_dir("fr") / "common.json")["common"]["bye"] == "[fr] Goodbye"


class TestBatchSplit:
    def test_two_tasks_two_batches(self, make_task):
        tasks = [make_task("a", "x" * 40), make_task("b", "y" * 40)]
        # Each task is ~11 tokens; a ceiling of 15 admits only one per batch.
        assert batch_tasks_by_token_limit(tasks, max_tokens=15) == [[tasks[0]], [tasks[1]]]

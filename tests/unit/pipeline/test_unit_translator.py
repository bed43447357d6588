# tests/unit/pipeline/test_translator.py — v1
"""Tests for pipeline/translator.py — per-file pipeline and run engine."""

from __future__ import annotations

import json

import pytest

from fakes import FakeLLMClient, prompt_inputs, read_json, write_json
from i18ndiff.cache.fingerprint import text_hash
from i18ndiff.pipeline.translator import Translator


@pytest.fixture
def translator(settings, fake_client, locales_dir):
    return Translator(settings, client=fake_client)


class TestTranslateFile:
    @pytest.mark.asyncio
    async def test_new_target_file(self, translator, fake_client, locales_dir):
        await translator.initialize()
        result = await translator.translate_file("common.json", "fr")

        assert result.success is True
        assert result.added == 2
        assert result.written is True
        assert fake_client.call_count == 1
        assert read_json(locales_dir / "fr" / "common.json") == {
            "common": {"hello": "[fr] Hello", "bye": "[fr] Goodbye"},
        }

    @pytest.mark.asyncio
    async def test_missing_base_file_fails(self, translator):
        result = await translator.translate_file("missing.json", "fr")
        assert result.success is False
        assert "Failed to read base file" in result.error

    @pytest.mark.asyncio
    async def test_invalid_base_file_fails(self, translator, locales_dir):
        (locales_dir / "en" / "broken.json").write_text("{oops", encoding="utf-8")
        result = await translator.translate_file("broken.json", "fr")
        assert result.success is False

    @pytest.mark.asyncio
    async def test_unparseable_target_treated_as_missing(self, translator, locales_dir):
        target = locales_dir / "fr" / "common.json"
        target.parent.mkdir(parents=True)
        target.write_text("not json", encoding="utf-8")
        result = await translator.translate_file("common.json", "fr")
        assert result.success is True
        assert result.added == 2
        assert read_json(target)["common"]["hello"] == "[fr] Hello"

    @pytest.mark.asyncio
    async def test_existing_translation_kept(self, translator, fake_client, locales_dir):
        write_json(locales_dir / "fr" / "common.json", {
            "common": {"hello": "Bonjour", "bye": "Au revoir"},
        })
        result = await translator.translate_file("common.json", "fr")
        assert result.success is True
        assert result.added == 0
        assert result.written is False
        assert fake_client.call_count == 0

    @pytest.mark.asyncio
    async def test_skip_keys_copied_verbatim(self, make_settings, fake_client, locales_dir):
        translator = Translator(make_settings(skip_keys=["common.hello"]), client=fake_client)
        result = await translator.translate_file("common.json", "fr")
        assert result.skipped == 1
        assert fake_client.sent_sources() == ["Goodbye"]
        assert read_json(locales_dir / "fr" / "common.json")["common"]["hello"] == "Hello"

    @pytest.mark.asyncio
    async def test_removed_keys_dropped(self, translator, locales_dir):
        write_json(locales_dir / "fr" / "common.json", {
            "common": {"hello": "Bonjour", "bye": "Au revoir", "gone": "Parti"},
        })
        result = await translator.translate_file("common.json", "fr")
        assert result.removed == 1
        assert "gone" not in read_json(locales_dir / "fr" / "common.json")["common"]

    @pytest.mark.asyncio
    async def test_cache_hit_avoids_request(self, translator, fake_client, locales_dir):
        translator.cache.set("Hello", "Salut", "fr", "m")
        translator.cache.set("Goodbye", "Adieu", "fr", "m")
        result = await translator.translate_file("common.json", "fr")
        assert result.cache_hits == 2
        assert fake_client.call_count == 0
        assert read_json(locales_dir / "fr" / "common.json")["common"] == {
            "hello": "Salut", "bye": "Adieu",
        }

    @pytest.mark.asyncio
    async def test_duplicate_sources_sent_once(self, translator, fake_client, locales_dir):
        write_json(locales_dir / "en" / "dup.json", {"a": "Save", "b": "Save", "c": "Cancel"})
        result = await translator.translate_file("dup.json", "fr")
        assert result.success is True
        assert sorted(fake_client.sent_sources()) == ["Cancel", "Save"]
        assert read_json(locales_dir / "fr" / "dup.json") == {
            "a": "[fr] Save", "b": "[fr] Save", "c": "[fr] Cancel",
        }

    @pytest.mark.asyncio
    async def test_empty_source_resolves_without_request(self, translator, fake_client, locales_dir):
        write_json(locales_dir / "en" / "empty.json", {"blank": ""})
        result = await translator.translate_file("empty.json", "fr")
        assert result.success is True
        assert fake_client.call_count == 0
        assert read_json(locales_dir / "fr" / "empty.json") == {"blank": ""}

    @pytest.mark.asyncio
    async def test_failed_keys_recorded_and_fall_back(self, settings, locales_dir):
        client = FakeLLMClient(responder=lambda _p: ValueError("bad request"))
        translator = Translator(settings, client=client)
        result = await translator.translate_file("common.json", "fr")

        assert result.success is True
        assert result.failed_keys == 2
        assert translator.ledger.failure_count == 2
        # Failed keys carry the source text so the file stays complete.
        assert read_json(locales_dir / "fr" / "common.json") == {
            "common": {"hello": "Hello", "bye": "Goodbye"},
        }
        assert translator.snapshot.get("common.json", "fr", "common.hello") is None

    @pytest.mark.asyncio
    async def test_partial_reply(self, settings, locales_dir):
        def first_only(prompt):
            lang, inputs = prompt_inputs(prompt)
            return json.dumps({"T1": f"[{lang}] {inputs['T1']}"})

        translator = Translator(settings, client=FakeLLMClient(responder=first_only))
        result = await translator.translate_file("common.json", "fr")
        assert result.failed_keys == 1
        assert translator.ledger.failures[0].key == "common.bye"
        assert translator.snapshot.get("common.json", "fr", "common.hello") == text_hash("Hello")

    @pytest.mark.asyncio
    async def test_snapshot_updated_for_resolved_keys(self, translator):
        await translator.translate_file("common.json", "fr")
        assert translator.snapshot.get("common.json", "fr", "common.bye") == text_hash("Goodbye")


class TestBatching:
    @pytest.mark.asyncio
    async def test_batch_size_splits_requests(self, make_settings, fake_client, locales_dir):
        write_json(locales_dir / "en" / "many.json", {f"k{i}": f"Text {i}" for i in range(5)})
        translator = Translator(make_settings(batch_size=2), client=fake_client)
        await translator.translate_file("many.json", "fr")
        assert fake_client.call_count == 3

    @pytest.mark.asyncio
    async def test_token_limit_splits_requests(self, make_settings, fake_client, locales_dir):
        # Each task is ~100 tokens; sources differ so none are deduplicated.
        write_json(locales_dir / "en" / "long.json", {
            f"k{i}": str(i) + "x" * 395 for i in range(3)
        })
        translator = Translator(make_settings(batch_token_limit=150), client=fake_client)
        await translator.translate_file("long.json", "fr")
        assert fake_client.call_count == 3


class TestTranslateAll:
    @pytest.mark.asyncio
    async def test_stats_and_persistence(self, make_settings, fake_client, locales_dir):
        write_json(locales_dir / "en" / "pages" / "home.json", {"title": "Home"})
        s = make_settings(target_langs=["fr", "de"])
        translator = Translator(s, client=fake_client)
        await translator.initialize()
        stats = await translator.translate_all(progress=False)

        assert stats.total_files == 4
        assert stats.success_files == 4
        assert stats.failed_files == 0
        assert stats.total_added == 6
        assert stats.actual_used_tokens == 4 * 15
        assert s.cache_path.exists()
        assert translator.snapshot.path.exists()
        assert read_json(locales_dir / "de" / "pages" / "home.json") == {"title": "[de] Home"}

    @pytest.mark.asyncio
    async def test_failed_file_counted(self, translator, locales_dir):
        (locales_dir / "en" / "broken.json").write_text("[]", encoding="utf-8")
        stats = await translator.translate_all(progress=False)
        assert stats.total_files == 2
        assert stats.failed_files == 1
        assert stats.success_files == 1

    @pytest.mark.asyncio
    async def test_failure_report_written(self, settings, locales_dir):
        translator = Translator(settings, client=FakeLLMClient(responder=lambda _p: ValueError("nope")))
        stats = await translator.translate_all(progress=False)
        assert stats.total_failed_keys == 2
        assert settings.failure_log_path.exists()
        assert translator.ledger.markdown_path.exists()
        assert translator.ledger.failure_count == 0

    @pytest.mark.asyncio
    async def test_cache_hits_reported(self, translator, fake_client, locales_dir):
        translator.cache.set("Hello", "Salut", "fr", "m")
        stats = await translator.translate_all(progress=False)
        assert stats.cache_hits == 1
        assert stats.estimated_saved_tokens == 100

    @pytest.mark.asyncio
    async def test_empty_base_dir(self, translator, locales_dir):
        (locales_dir / "en" / "common.json").unlink()
        stats = await translator.translate_all(progress=False)
        assert stats.total_files == 0


class TestStateManagement:
    @pytest.mark.asyncio
    async def test_force_retranslates(self, translator, fake_client, locales_dir):
        write_json(locales_dir / "fr" / "common.json", {
            "common": {"hello": "Bonjour", "bye": "Au revoir"},
        })
        translator.cache.set("Hello", "Salut", "fr", "m")
        translator.set_force(True)
        await translator.translate_file("common.json", "fr")
        assert sorted(fake_client.sent_sources()) == ["Goodbye", "Hello"]
        assert read_json(locales_dir / "fr" / "common.json")["common"]["hello"] == "[fr] Hello"

    @pytest.mark.asyncio
    async def test_version_reset_clears_snapshot(self, settings, fake_client, locales_dir):
        first = Translator(settings, client=fake_client)
        await first.translate_all(progress=False)

        settings.cache_path.write_text(json.dumps({"version": "0.0.1", "entries": {}}), encoding="utf-8")
        second = Translator(settings, client=fake_client)
        await second.initialize()
        assert second.snapshot.get("common.json", "fr", "common.hello") is None

    @pytest.mark.asyncio
    async def test_clear_cache_and_stats(self, translator, settings):
        translator.cache.set("Hello", "Bonjour", "fr", "m")
        assert translator.cache_stats().total_entries == 1
        await translator.clear_cache()
        assert translator.cache_stats().total_entries == 0
        assert settings.cache_path.exists()

    def test_set_verbose(self, translator):
        translator.set_verbose(True)
        assert translator.ledger.verbose is True

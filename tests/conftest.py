# tests/conftest.py — v2
"""Shared test fixtures for unit and integration tests.

Provides a scripted fake LLM client, a temporary locales tree and a
Settings factory. No network access: every request goes to the fake.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from fakes import FakeLLMClient, write_json
from i18ndiff.config.settings import Settings
from i18ndiff.core.models import TranslationTask


@pytest.fixture
def fake_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def locales_dir(tmp_path: Path) -> Path:
    """``locales/en/common.json`` with a small nested tree."""
    root = tmp_path / "locales"
    write_json(root / "en" / "common.json", {
        "common": {"hello": "Hello", "bye": "Goodbye"},
        "count": 3,
    })
    return root


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Factory for Settings isolated from env files and the working directory."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "llm_api_key": "test-key",
            "base_lang": "en",
            "target_langs": ["fr"],
            "locales_dir": tmp_path / "locales",
            "cache_path": tmp_path / ".i18n-diff-cache.json",
            "failure_log_path": tmp_path / ".i18n-diff-failures.json",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture
def make_task() -> Callable[..., TranslationTask]:
    def _make(
        key: str, source: str, lang: str = "fr", file_path: str = "common.json",
    ) -> TranslationTask:
        return TranslationTask(key=key, source_text=source, target_lang=lang, file_path=file_path)

    return _make

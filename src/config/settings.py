# src/config/settings.py — v2
"""Typed configuration loaded from a JSON config file, env vars and .env.

Single source of truth for run settings. Precedence, highest first:
explicit overrides, config file, environment / .env, field defaults.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_SEARCH_PLACES: tuple[str, ...] = (
    "i18n-diff.config.json",
    ".i18n-diffrc.json",
    ".i18n-diffrc",
)

# Nested sections accepted in the config file, flattened onto prefixed fields.
_NESTED_SECTIONS: dict[str, str] = {"llm": "llm_", "watch": "watch_"}


class ConfigurationError(Exception):
    """Raised when configuration is missing or internally inconsistent."""


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Languages and files ===
    base_lang: str = "en"
    target_langs: list[str] = Field(default_factory=list)
    locales_dir: Path = Path("./locales")
    skip_keys: list[str] = Field(default_factory=list)

    # === LLM service ===
    llm_provider: str = "openai"
    llm_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("llm_api_key", "openai_api_key"),
    )
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    llm_max_tokens: int = 4096
    llm_temperature: float = 0.3
    llm_timeout_s: float = 60.0
    llm_retries: int = 3

    # === Scheduling ===
    concurrency: int = 3
    batch_size: int = 20
    batch_token_limit: int = 3000

    # === Persistence ===
    cache_path: Path = Path(".i18n-diff-cache.json")
    failure_log_path: Path = Path(".i18n-diff-failures.json")

    # === Watch mode ===
    watch_debounce_ms: int = 300
    watch_ignored: list[str] = Field(default_factory=lambda: ["**/node_modules/**"])

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Collect every rule violation and raise them together."""
        errors: list[str] = []

        if not self.base_lang:
            errors.append("base_lang is required")
        if not self.target_langs:
            errors.append("target_langs must have at least one language")
        if self.base_lang and self.base_lang in self.target_langs:
            errors.append("target_langs must not contain base_lang")
        if not self.llm_api_key:
            errors.append(
                "llm_api_key is required (set OPENAI_API_KEY or llm.api_key in the config file)"
            )
        if not 1 <= self.concurrency <= 10:
            errors.append("concurrency must be between 1 and 10")
        if not 1 <= self.batch_size <= 100:
            errors.append("batch_size must be between 1 and 100")
        if self.batch_token_limit < 1:
            errors.append("batch_token_limit must be positive")
        if self.llm_retries < 1:
            errors.append("llm_retries must be >= 1")

        if errors:
            raise ConfigurationError(
                "Config validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )
        return self

    # --- Helpers ---

    @property
    def base_dir(self) -> Path:
        """Directory holding the base-language files."""
        return self.locales_dir / self.base_lang

    def target_dir(self, target_lang: str) -> Path:
        """Directory holding the files of one target language."""
        return self.locales_dir / target_lang


def find_config_file(search_dir: Path | None = None) -> Path | None:
    """Return the first config file found in ``search_dir`` (default: cwd)."""
    root = Path.cwd() if search_dir is None else search_dir
    for name in CONFIG_SEARCH_PLACES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a JSON config file into flat Settings keyword arguments.

    Nested ``llm`` and ``watch`` objects are flattened onto ``llm_*`` and
    ``watch_*`` fields; relative paths resolve against the file's directory.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    flat: dict[str, Any] = {}
    for key, value in raw.items():
        prefix = _NESTED_SECTIONS.get(key)
        if prefix is not None and isinstance(value, dict):
            for sub_key, sub_value in value.items():
                flat[f"{prefix}{sub_key}"] = sub_value
        else:
            flat[key] = value

    for path_field in ("locales_dir", "cache_path", "failure_log_path"):
        if path_field in flat and not Path(flat[path_field]).is_absolute():
            flat[path_field] = (path.parent / flat[path_field]).resolve()

    return flat


def load_settings(config_path: Path | str | None = None, **overrides: Any) -> Settings:
    """Load settings from the config file with optional overrides.

    Args:
        config_path: Explicit config file. Searched in cwd when omitted.
        **overrides: Field-level overrides (CLI flags, tests).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If no config file is found or validation fails.
    """
    if config_path is not None:
        path = Path(config_path)
        if not path.is_file():
            raise ConfigurationError(f"Config file not found: {config_path}")
    else:
        path = find_config_file()
        if path is None:
            raise ConfigurationError(
                "Config file not found. Create i18n-diff.config.json "
                "(run `i18ndiff init`) or pass --config."
            )

    values = read_config_file(path)
    values.update(overrides)
    logger.info("Loaded config: %s", path)
    return Settings(**values)  # type: ignore[arg-type]


def write_default_config(path: Path) -> Path:
    """Write a starter config file. Refuses to overwrite an existing one."""
    if path.exists():
        raise ConfigurationError(f"Config file already exists: {path}")
    starter = {
        "base_lang": "en",
        "target_langs": ["fr", "de"],
        "locales_dir": "./locales",
        "skip_keys": [],
        "llm": {
            "model": "gpt-4o-mini",
            "base_url": "https://api.openai.com/v1",
            "temperature": 0.3,
            "timeout_s": 60,
            "retries": 3,
        },
        "watch": {"debounce_ms": 300},
        "concurrency": 3,
        "batch_size": 20,
        "cache_path": ".i18n-diff-cache.json",
    }
    path.write_text(json.dumps(starter, indent=2) + "\n", encoding="utf-8")
    return path

# src/cache/models.py — v2
"""Cache domain models: CacheEntry, TranslationCache, CacheStats.

Field names are camelCase on disk (``sourceText``, ``translatedText``...).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CACHE_VERSION = "1.0.0"


class CacheEntry(BaseModel):
    """One reusable translation. ``timestamp`` is epoch milliseconds."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_text: str
    translated_text: str
    target_lang: str
    timestamp: int
    model: str


class TranslationCache(BaseModel):
    """On-disk cache document. Entries are keyed by ``cache_key()``."""

    version: str = CACHE_VERSION
    entries: dict[str, CacheEntry] = Field(default_factory=dict)


class CacheStats(BaseModel):
    """Entry counts, overall and per target language."""

    total_entries: int = 0
    languages: dict[str, int] = Field(default_factory=dict)

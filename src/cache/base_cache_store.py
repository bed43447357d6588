# src/cache/base_cache_store.py — v2
"""Abstract translation cache interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from i18ndiff.cache.models import CacheStats


class BaseTranslationCache(ABC):
    """Unified interface for translation cache backends.

    Lookups and writes are in-memory; ``load``/``save`` move the whole
    store to and from persistent storage once per run.
    """

    @abstractmethod
    async def load(self) -> None:
        """Load persisted entries, resetting to empty on any problem."""

    @abstractmethod
    async def save(self) -> None:
        """Persist entries if anything changed since the last save."""

    @abstractmethod
    def get(self, source_text: str, target_lang: str) -> str | None:
        """Return the cached translation, or None on a miss."""

    @abstractmethod
    def set(
        self, source_text: str, translated_text: str, target_lang: str, model: str
    ) -> None:
        """Store a translation."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry."""

    @abstractmethod
    def stats(self) -> CacheStats:
        """Entry counts per target language."""

    def has(self, source_text: str, target_lang: str) -> bool:
        """Whether a translation is cached for this text and language."""
        return self.get(source_text, target_lang) is not None

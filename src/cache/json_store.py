# src/cache/json_store.py — v2
"""JSON file-backed translation cache.

The whole cache lives in one versioned JSON document. A version mismatch
on load discards every entry instead of migrating them.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from pydantic import ValidationError

from i18ndiff.cache.base_cache_store import BaseTranslationCache
from i18ndiff.cache.fingerprint import cache_key
from i18ndiff.cache.models import CACHE_VERSION, CacheEntry, CacheStats, TranslationCache

logger = logging.getLogger(__name__)

# Rough tokens saved per cache hit, for run statistics only.
SAVED_TOKENS_PER_HIT = 100

_DAY_MS = 24 * 60 * 60 * 1000


class JsonTranslationCache(BaseTranslationCache):
    """Single-file cache store with dirty-flag saves."""

    def __init__(self, cache_path: Path | str) -> None:
        self._path = Path(cache_path).expanduser()
        self._cache = TranslationCache()
        self._dirty = False
        self.version_reset = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dirty(self) -> bool:
        return self._dirty

    def __len__(self) -> int:
        return len(self._cache.entries)

    async def load(self) -> None:
        """Load the cache file. Missing, corrupt or outdated files reset to empty."""
        self.version_reset = False
        if not self._path.exists():
            self._cache = TranslationCache()
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            version = data.get("version") if isinstance(data, dict) else None
            if version != CACHE_VERSION:
                logger.warning(
                    "Cache version mismatch (%s vs %s), resetting", version, CACHE_VERSION,
                )
                self._cache = TranslationCache()
                self.version_reset = True
                return
            self._cache = TranslationCache.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to load cache %s: %s", self._path, e)
            self._cache = TranslationCache()
            return
        logger.debug("Cache loaded: %d entries", len(self._cache.entries))

    async def save(self) -> None:
        """Write the cache file if it changed since the last save."""
        if not self._dirty:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                self._cache.model_dump_json(by_alias=True, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning("Failed to save cache %s: %s", self._path, e)
            return
        self._dirty = False
        logger.debug("Cache saved: %d entries", len(self._cache.entries))

    def get(self, source_text: str, target_lang: str) -> str | None:
        entry = self._cache.entries.get(cache_key(source_text, target_lang))
        # Exact source comparison guards against fingerprint collisions.
        if entry is not None and entry.source_text == source_text:
            return entry.translated_text
        return None

    def set(
        self, source_text: str, translated_text: str, target_lang: str, model: str
    ) -> None:
        self._cache.entries[cache_key(source_text, target_lang)] = CacheEntry(
            source_text=source_text,
            translated_text=translated_text,
            target_lang=target_lang,
            timestamp=int(time.time() * 1000),
            model=model,
        )
        self._dirty = True

    def set_batch(
        self, items: list[tuple[str, str]], target_lang: str, model: str
    ) -> None:
        """Store several ``(source_text, translated_text)`` pairs."""
        for source_text, translated_text in items:
            self.set(source_text, translated_text, target_lang, model)

    def clear(self) -> None:
        self._cache.entries = {}
        self._dirty = True
        logger.info("Cache cleared")

    def clean_expired(self, max_age_days: float = 30) -> int:
        """Drop entries older than ``max_age_days``. Returns the number removed."""
        cutoff = int(time.time() * 1000) - int(max_age_days * _DAY_MS)
        expired = [k for k, e in self._cache.entries.items() if e.timestamp < cutoff]
        for key in expired:
            del self._cache.entries[key]
        if expired:
            self._dirty = True
            logger.debug("Removed %d expired cache entries", len(expired))
        return len(expired)

    def stats(self) -> CacheStats:
        languages: dict[str, int] = {}
        for entry in self._cache.entries.values():
            languages[entry.target_lang] = languages.get(entry.target_lang, 0) + 1
        return CacheStats(total_entries=len(self._cache.entries), languages=languages)

    @staticmethod
    def estimate_saved_tokens(hit_count: int) -> int:
        return hit_count * SAVED_TOKENS_PER_HIT

# src/cache/snapshot_store.py — v1
"""Source-text snapshot ledger.

Maps ``"<targetLang>:<filePath>" -> {key: text_hash(source)}`` for the
source text last reconciled per key. Persisted next to the cache file as
``<cache path without .json>.snapshot.json``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from i18ndiff.cache.fingerprint import text_hash

logger = logging.getLogger(__name__)


def snapshot_path_for(cache_path: Path | str) -> Path:
    """Derive the snapshot file path from the cache file path."""
    raw = str(cache_path)
    if raw.endswith(".json"):
        raw = raw[: -len(".json")]
    return Path(raw + ".snapshot.json")


class SnapshotStore:
    """In-memory snapshot with explicit load/save lifecycle."""

    def __init__(self, cache_path: Path | str) -> None:
        self._path = snapshot_path_for(Path(cache_path).expanduser())
        self._data: dict[str, dict[str, str]] = {}
        self._dirty = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dirty(self) -> bool:
        return self._dirty

    @staticmethod
    def _scope(file_path: str, target_lang: str) -> str:
        return f"{target_lang}:{file_path}"

    async def load(self) -> None:
        """Load the snapshot file. Anything unreadable resets to empty."""
        if not self._path.exists():
            self._data = {}
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load snapshot %s: %s", self._path, e)
            self._data = {}
            return
        self._data = _normalize(raw)

    async def save(self) -> None:
        """Write the snapshot file if it changed since the last save."""
        if not self._dirty:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(self._data, ensure_ascii=False, indent=2), encoding="utf-8"
            )
        except OSError as e:
            logger.warning("Failed to save snapshot %s: %s", self._path, e)
            return
        self._dirty = False

    def get(self, file_path: str, target_lang: str, key: str) -> str | None:
        """Hash of the source text last reconciled for this key, if any."""
        return self._data.get(self._scope(file_path, target_lang), {}).get(key)

    def update(self, file_path: str, target_lang: str, key: str, source_text: str) -> None:
        """Record ``source_text`` as reconciled for this key."""
        digest = text_hash(source_text)
        rows = self._data.setdefault(self._scope(file_path, target_lang), {})
        if rows.get(key) != digest:
            rows[key] = digest
            self._dirty = True

    def remove(self, file_path: str, target_lang: str, keys: list[str]) -> None:
        """Forget keys that no longer exist in the base file."""
        rows = self._data.get(self._scope(file_path, target_lang))
        if not rows:
            return
        for key in keys:
            if rows.pop(key, None) is not None:
                self._dirty = True

    def reset(self) -> None:
        """Drop every snapshot entry (force mode, cache invalidation)."""
        self._data = {}
        self._dirty = True


def _normalize(payload: object) -> dict[str, dict[str, str]]:
    """Keep only well-formed ``{scope: {key: hash}}`` rows."""
    if not isinstance(payload, dict):
        return {}
    normalized: dict[str, dict[str, str]] = {}
    for scope, rows in payload.items():
        if not isinstance(rows, dict):
            continue
        clean = {str(k): v for k, v in rows.items() if isinstance(v, str) and v}
        if clean:
            normalized[str(scope)] = clean
    return normalized

# src/batch/scanner.py — v2
"""Locale scanner: discover base-language JSON files."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class LocaleScanner:
    """List the JSON files of a base-language directory."""

    def __init__(self, recursive: bool = True) -> None:
        self._recursive = recursive

    def scan(self, base_dir: Path) -> list[str]:
        """Return sorted POSIX paths of ``*.json`` files relative to ``base_dir``.

        Raises:
            ValueError: If ``base_dir`` is not a directory.
        """
        if not base_dir.is_dir():
            raise ValueError(f"Base language directory not found: {base_dir}")

        pattern_fn = base_dir.rglob if self._recursive else base_dir.glob
        files = sorted(
            path.relative_to(base_dir).as_posix()
            for path in pattern_fn("*.json")
            if path.is_file()
        )
        logger.info(
            "Scanned %s: found %d JSON files (recursive=%s)",
            base_dir, len(files), self._recursive,
        )
        return files

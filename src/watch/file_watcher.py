# src/watch/file_watcher.py — v1
"""Watch the base-language directory and resync changed files.

Filesystem events are debounced by watchfiles; each debounced set is
reduced to one FileChangeEvent per relative path, then every target
language of each added or modified file goes through the engine.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from fnmatch import fnmatchcase
from pathlib import Path
from typing import TYPE_CHECKING

from watchfiles import Change, awatch

from i18ndiff.config.settings import Settings
from i18ndiff.core.models import FileChangeEvent, FileProcessResult

if TYPE_CHECKING:
    from i18ndiff.pipeline.translator import Translator

logger = logging.getLogger(__name__)

_CHANGE_KINDS: dict[Change, str] = {
    Change.added: "added",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def is_ignored(relative_path: str, patterns: Iterable[str]) -> bool:
    """True if the path matches any ignore glob."""
    return any(fnmatchcase(relative_path, p) or fnmatchcase("/" + relative_path, p) for p in patterns)


def to_change_events(
    changes: Iterable[tuple[Change, str]],
    base_dir: Path,
    ignored: Iterable[str] = (),
) -> list[FileChangeEvent]:
    """Reduce raw watchfiles changes to one event per base-relative JSON path.

    When a path shows up several times in one set, the file's presence on
    disk decides: a missing file is ``deleted``, otherwise the last
    non-delete kind wins.
    """
    root = base_dir.resolve()
    patterns = list(ignored)
    kinds: dict[str, str] = {}

    for change, raw_path in changes:
        path = Path(raw_path)
        if path.suffix != ".json":
            continue
        try:
            rel = path.resolve().relative_to(root).as_posix()
        except ValueError:
            continue
        if is_ignored(rel, patterns):
            continue
        kind = _CHANGE_KINDS.get(change, "modified")
        if kind != "deleted" or rel not in kinds:
            kinds[rel] = kind

    events = []
    for rel in sorted(kinds):
        kind = kinds[rel]
        exists = (root / rel).exists()
        if not exists:
            kind = "deleted"
        elif kind == "deleted":
            kind = "modified"
        events.append(FileChangeEvent(kind=kind, path=rel))
    return events


class LocaleWatcher:
    """Long-running watch loop over the base-language directory."""

    def __init__(self, settings: Settings, translator: Translator) -> None:
        self._settings = settings
        self._translator = translator
        self._stop_event: asyncio.Event | None = None

    async def run(self) -> None:
        """Watch until stop() is called or the task is cancelled."""
        base_dir = self._settings.base_dir
        self._stop_event = asyncio.Event()
        logger.info("Watching %s (Ctrl+C to stop)", base_dir)

        async for changes in awatch(
            base_dir,
            debounce=self._settings.watch_debounce_ms,
            stop_event=self._stop_event,
            watch_filter=lambda _change, path: path.endswith(".json"),
        ):
            events = to_change_events(changes, base_dir, self._settings.watch_ignored)
            if events:
                await self.process_events(events)

        logger.info("Watcher stopped")

    async def process_events(self, events: list[FileChangeEvent]) -> list[FileProcessResult]:
        """Resync every target language of each added or modified file."""
        results: list[FileProcessResult] = []
        for event in events:
            logger.info("File %s: %s", event.kind, event.path)
            if event.kind == "deleted":
                logger.info("Base file deleted, target files left untouched: %s", event.path)
                continue
            results.extend(
                await asyncio.gather(*(
                    self._translator.translate_file(event.path, lang)
                    for lang in self._settings.target_langs
                ))
            )

        await self._translator.save_state()
        failed = sum(1 for r in results if not r.success)
        if failed:
            logger.warning("%d of %d files failed", failed, len(results))
        else:
            logger.info("Processed %d files", len(results))
        return results

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

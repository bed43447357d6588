# src/core/diff_analyzer.py — v2
"""Snapshot-driven diff classifier.

Every base key lands in exactly one of added / modified / skipped /
unchanged; target keys missing from the base are reported as removed.

Per unskipped base key ``k`` with source ``s`` and target value ``t``:
    no ``t``                        -> added
    no snapshot hash, t == s        -> modified (never translated)
    no snapshot hash, t != s        -> unchanged (existing translation kept)
    hash(s) != snapshot hash        -> modified (source drifted)
    otherwise                       -> unchanged
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from i18ndiff.cache.fingerprint import text_hash
from i18ndiff.core.json_tree import flatten
from i18ndiff.core.models import DiffResult
from i18ndiff.core.skip_matcher import skipped_keys

if TYPE_CHECKING:
    from i18ndiff.cache.snapshot_store import SnapshotStore


def analyze_diff(
    base: dict[str, Any],
    target: dict[str, Any] | None,
    skip_patterns: list[str] | None = None,
    file_path: str | None = None,
    target_lang: str | None = None,
    snapshot: SnapshotStore | None = None,
    force: bool = False,
) -> DiffResult:
    """Classify the keys of a base tree against a target tree.

    Args:
        base: Base-language content.
        target: Current target content, or None when the file is missing.
        skip_patterns: Key patterns that are never translated.
        file_path: File identity used to scope snapshot lookups.
        target_lang: Target language used to scope snapshot lookups.
        snapshot: Snapshot ledger. Without it (or without a file identity)
            only the "still equal to the source" signal is used.
        force: Treat every unskipped base key as added, ignoring target
            content and snapshot state.

    Returns:
        DiffResult with five disjoint key lists.
    """
    base_flat = flatten(base)
    target_flat = flatten(target) if target else {}

    skip_set = skipped_keys(base_flat, skip_patterns)
    result = DiffResult(skipped=[k for k in base_flat if k in skip_set])

    use_snapshot = snapshot is not None and file_path is not None and target_lang is not None

    for key, source in base_flat.items():
        if key in skip_set:
            continue

        if force or key not in target_flat:
            result.added.append(key)
            continue

        still_source = target_flat[key] == source
        prev_hash = snapshot.get(file_path, target_lang, key) if use_snapshot else None  # type: ignore[union-attr, arg-type]

        if prev_hash is None:
            (result.modified if still_source else result.unchanged).append(key)
        elif prev_hash != text_hash(source):
            result.modified.append(key)
        else:
            result.unchanged.append(key)

    result.removed = [k for k in target_flat if k not in base_flat]
    return result

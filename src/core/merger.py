# src/core/merger.py — v1
"""Reconcile translations back into the target tree.

Precedence per base key:
    1. fresh translation from this run
    2. skip-listed key: base source verbatim
    3. prior target value, when present and different from the source
    4. base source (untranslated fallback)

Keys absent from the base are dropped, which is how deletions propagate.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

from i18ndiff.core.json_tree import flatten, unflatten


def merge_translations(
    base: dict[str, Any],
    prior_target: dict[str, Any] | None,
    translations: Mapping[str, str],
    skipped: Collection[str],
) -> dict[str, Any]:
    """Build the new target tree from base, prior target and new translations."""
    base_flat = flatten(base)
    target_flat = flatten(prior_target) if prior_target else {}
    skip_set = set(skipped)

    merged: dict[str, str] = {}
    for key, source in base_flat.items():
        if key in translations:
            merged[key] = translations[key]
        elif key in skip_set:
            merged[key] = source
        elif target_flat.get(key) and target_flat[key] != source:
            merged[key] = target_flat[key]
        else:
            merged[key] = source

    return unflatten(merged)

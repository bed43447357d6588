# src/core/skip_matcher.py — v1
"""Glob-like skip patterns over dotted key paths.

Supported forms:
    common.brandName        exact (or any fnmatch glob over the whole path)
    footer.**               prefix: every key under ``footer``
    **.@BRAND               suffix at any depth
    errors.**.message       infix: under ``errors``, any depth, then suffix
"""

from __future__ import annotations

from collections.abc import Iterable
from fnmatch import fnmatchcase


def is_key_skipped(key: str, patterns: Iterable[str] | None) -> bool:
    """Return True if ``key`` matches any of ``patterns``."""
    if not patterns:
        return False
    return any(match_key_pattern(key, pattern) for pattern in patterns)


def skipped_keys(keys: Iterable[str], patterns: Iterable[str] | None) -> set[str]:
    """Subset of ``keys`` that must never be sent for translation."""
    pattern_list = list(patterns or [])
    return {k for k in keys if is_key_skipped(k, pattern_list)}


def match_key_pattern(key: str, pattern: str) -> bool:
    """Match a single key path against a single pattern."""
    if pattern.startswith("**."):
        return _match_any_suffix(key.split("."), pattern[3:])

    if pattern.endswith(".**"):
        prefix = pattern[:-3]
        return key == prefix or key.startswith(prefix + ".")

    if ".**." in pattern:
        prefix, suffix = pattern.split(".**.", 1)
        if not key.startswith(prefix + "."):
            return False
        remaining = key[len(prefix) + 1 :]
        return _match_any_suffix(remaining.split("."), suffix)

    return fnmatchcase(key, pattern)


def _match_any_suffix(parts: list[str], pattern: str) -> bool:
    """True if any trailing run of ``parts`` matches ``pattern``."""
    for i in range(len(parts)):
        if fnmatchcase(".".join(parts[i:]), pattern):
            return True
    return False

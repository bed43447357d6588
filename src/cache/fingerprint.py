# src/cache/fingerprint.py — v3
"""Content fingerprints for change detection and translation reuse.

Two separate domains:
    text_hash(source)            snapshot ledger, detects source-text drift
    cache_key(source, lang)      translation cache key, detects reuse
"""

from __future__ import annotations

import hashlib


def text_hash(text: str) -> str:
    """SHA-256 of the raw source text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def cache_key(source_text: str, target_lang: str) -> str:
    """SHA-256 over source text and target language."""
    payload = f"{source_text}:{target_lang}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()

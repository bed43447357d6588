# src/core/models.py — v2
"""Core domain models shared across the sync pipeline.

DiffResult, TranslationTask, TranslationResult, BatchOutcome,
FileProcessResult, TranslationStats, FileChangeEvent.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# Flattened tree: dotted key path -> string value.
FlatTree = dict[str, str]


class DiffResult(BaseModel):
    """Disjoint classification of the keys of one base/target file pair."""

    added: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)

    @property
    def pending(self) -> list[str]:
        """Keys that need a translation this run (added, then modified)."""
        return [*self.added, *self.modified]

    @property
    def has_work(self) -> bool:
        return bool(self.added or self.modified)


class TranslationTask(BaseModel):
    """One key awaiting translation."""

    key: str
    source_text: str
    target_lang: str
    file_path: str


class TranslationResult(BaseModel):
    """Outcome of translating one key."""

    key: str
    translated_text: str = ""
    target_lang: str
    success: bool
    error: str | None = None


class BatchOutcome(BaseModel):
    """Results of one batch request plus the raw exchange for diagnostics."""

    results: list[TranslationResult]
    prompt: str = ""
    response: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0


class FileProcessResult(BaseModel):
    """Summary of one file/language pipeline."""

    file_path: str
    target_lang: str
    added: int = 0
    updated: int = 0
    skipped: int = 0
    removed: int = 0
    cache_hits: int = 0
    failed_keys: int = 0
    written: bool = False
    success: bool = False
    error: str | None = None


class TranslationStats(BaseModel):
    """Aggregate statistics of a full run."""

    total_files: int = 0
    success_files: int = 0
    failed_files: int = 0
    total_added: int = 0
    total_updated: int = 0
    total_skipped: int = 0
    total_removed: int = 0
    total_failed_keys: int = 0
    cache_hits: int = 0
    estimated_saved_tokens: int = 0
    actual_used_tokens: int = 0
    duration_seconds: float = 0.0


class FileChangeEvent(BaseModel):
    """A debounced change to a base-language file."""

    kind: Literal["added", "modified", "deleted"]
    path: str

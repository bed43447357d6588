# src/logging/context.py — v2
"""Contextual logging support: attach run_id, target_lang, file_path to records.

Context variables are per asyncio task, so concurrent file pipelines each
log under their own language and file.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_target_lang: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "target_lang", default=None
)
_file_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "file_path", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    target_lang: str | None = None
    file_path: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}

    @property
    def tag(self) -> str | None:
        """Short ``lang/file`` tag for text logs."""
        if self.target_lang and self.file_path:
            return f"{self.target_lang}/{self.file_path}"
        return self.target_lang or self.file_path


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        target_lang=_target_lang.get(),
        file_path=_file_path.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set run-level context (called once per sync pass)."""
    _run_id.set(run_id)


def set_file_context(target_lang: str, file_path: str) -> None:
    """Set file-level context (called per file pipeline)."""
    _target_lang.set(target_lang)
    _file_path.set(file_path)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _target_lang.set(None)
    _file_path.set(None)

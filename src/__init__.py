# src/__init__.py — v1
"""i18n-diff: incremental LLM translation of JSON locale trees."""

from i18ndiff.version import __version__

__all__ = ["__version__"]

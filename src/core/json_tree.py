# src/core/json_tree.py — v1
"""Nested tree <-> flat dotted-path mapping.

Only string leaves survive flattening; numbers, booleans, null and arrays
are dropped. Arrays are opaque leaves, never recursed into.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from i18ndiff.core.models import FlatTree


def flatten(tree: dict[str, Any], prefix: str = "") -> FlatTree:
    """Flatten a nested object into ``{"a.b.c": "value"}``.

    >>> flatten({"common": {"hello": "World"}, "n": 3})
    {'common.hello': 'World'}
    """
    result: FlatTree = {}
    _flatten_into(tree, prefix, result)
    return result


def _flatten_into(node: dict[str, Any], prefix: str, out: FlatTree) -> None:
    for key, value in node.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            _flatten_into(value, path, out)
        elif isinstance(value, str):
            out[path] = value


def unflatten(flat: FlatTree) -> dict[str, Any]:
    """Rebuild a nested object from dotted paths.

    >>> unflatten({"common.hello": "World", "common.bye": "Bye"})
    {'common': {'hello': 'World', 'bye': 'Bye'}}
    """
    result: dict[str, Any] = {}
    for path, value in flat.items():
        parts = path.split(".")
        current = result
        for part in parts[:-1]:
            child = current.get(part)
            if not isinstance(child, dict):
                child = {}
                current[part] = child
            current = child
        current[parts[-1]] = value
    return result


def read_json_tree(path: Path) -> dict[str, Any]:
    """Read a JSON object from disk.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not a JSON object.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}, got {type(data).__name__}")
    return data


def write_json_tree(path: Path, tree: dict[str, Any]) -> None:
    """Write a JSON object with 2-space indent, keeping non-ASCII text as-is."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(tree, ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )

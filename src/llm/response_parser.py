# src/llm/response_parser.py — v2
"""Defensive parsing of batch translation replies.

Strategies are tried in order and the first one that recovers at least
one known id wins:

    1. parse_json_object     first ``{...}`` span, strict JSON
    2. parse_id_pairs        regex scan for ``"T<n>": "<string>"`` pairs
    3. parse_raw_singleton   single-task batches only: the whole reply,
                             minus one wrapping code fence
"""

from __future__ import annotations

import json
import logging
import re
from typing import Callable

from i18ndiff.core.models import TranslationResult, TranslationTask

logger = logging.getLogger(__name__)

NOT_FOUND_ERROR = "Translation not found in response"

ParseStrategy = Callable[[str, dict[str, str]], dict[str, str] | None]

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ID_PAIR_RE = re.compile(r'"(T\d+)"\s*:\s*"((?:[^"\\]|\\.)*)"')
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}
_LEADING_FENCE_RE = re.compile(r"^```[^\n]*\n")
_TRAILING_FENCE_RE = re.compile(r"\n?```\s*$")


def _unescape(value: str) -> str:
    """Decode a captured JSON string body, tolerating invalid escapes."""
    try:
        return json.loads(f'"{value}"')
    except json.JSONDecodeError:
        pass
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), value)


def parse_json_object(response: str, id_map: dict[str, str]) -> dict[str, str] | None:
    match = _JSON_OBJECT_RE.search(response.strip())
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    # Literal "\n" sequences the model kept escaped become real newlines.
    return {
        task_id: value.replace("\\n", "\n")
        for task_id, value in parsed.items()
        if task_id in id_map and isinstance(value, str)
    }


def parse_id_pairs(response: str, id_map: dict[str, str]) -> dict[str, str] | None:
    found = {
        m.group(1): _unescape(m.group(2))
        for m in _ID_PAIR_RE.finditer(response)
        if m.group(1) in id_map
    }
    return found or None


def parse_raw_singleton(response: str, id_map: dict[str, str]) -> dict[str, str] | None:
    if len(id_map) != 1:
        return None
    cleaned = response.strip()
    cleaned = _LEADING_FENCE_RE.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE_RE.sub("", cleaned, count=1).strip()
    if not cleaned:
        return None
    (task_id,) = id_map
    return {task_id: cleaned}


PARSE_STRATEGIES: tuple[ParseStrategy, ...] = (
    parse_json_object,
    parse_id_pairs,
    parse_raw_singleton,
)


def extract_translations(
    response: str,
    id_map: dict[str, str],
    strategies: tuple[ParseStrategy, ...] = PARSE_STRATEGIES,
) -> dict[str, str]:
    """Return ``{id: text}`` from the first strategy that recovers any id."""
    for strategy in strategies:
        found = strategy(response, id_map)
        if found:
            logger.debug("Parsed %d/%d ids via %s", len(found), len(id_map), strategy.__name__)
            return found
    return {}


def parse_batch_response(
    response: str,
    tasks: list[TranslationTask],
    id_map: dict[str, str],
) -> list[TranslationResult]:
    """Map a raw reply back to one TranslationResult per task."""
    by_id = extract_translations(response, id_map)
    by_key = {id_map[task_id]: text for task_id, text in by_id.items()}

    results: list[TranslationResult] = []
    for task in tasks:
        text = by_key.get(task.key)
        if text:
            results.append(TranslationResult(
                key=task.key, translated_text=text,
                target_lang=task.target_lang, success=True,
            ))
        else:
            results.append(TranslationResult(
                key=task.key, target_lang=task.target_lang,
                success=False, error=NOT_FOUND_ERROR,
            ))
    return results

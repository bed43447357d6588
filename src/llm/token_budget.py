# src/llm/token_budget.py — v2
"""Token estimation and token-bounded batching of translation tasks.

The estimate is a stable, monotonic proxy for request size: CJK
characters count 1 unit each, everything else 1/4 unit.
"""

from __future__ import annotations

import logging
import math
import re

from i18ndiff.core.models import TranslationTask

logger = logging.getLogger(__name__)

DEFAULT_BATCH_TOKEN_LIMIT = 3000

_CJK_RE = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]")


def estimate_tokens(text: str) -> int:
    """Rough token count for ``text``."""
    cjk = len(_CJK_RE.findall(text))
    other = len(text) - cjk
    return math.ceil(cjk + other / 4)


def task_tokens(task: TranslationTask) -> int:
    """Estimated size of one task as it appears in a request."""
    return estimate_tokens(f"{task.key}: {task.source_text}")


def batch_tasks_by_token_limit(
    tasks: list[TranslationTask],
    max_tokens: int = DEFAULT_BATCH_TOKEN_LIMIT,
    max_tasks: int | None = None,
) -> list[list[TranslationTask]]:
    """Split tasks into batches under ``max_tokens`` (and ``max_tasks``).

    Task order is preserved. A task that alone exceeds the ceiling becomes
    its own batch instead of being dropped.
    """
    batches: list[list[TranslationTask]] = []
    current: list[TranslationTask] = []
    current_tokens = 0

    for task in tasks:
        tokens = task_tokens(task)

        if tokens > max_tokens:
            if current:
                batches.append(current)
                current, current_tokens = [], 0
            logger.debug("Task %s (~%d tokens) exceeds the batch ceiling", task.key, tokens)
            batches.append([task])
            continue

        full = max_tasks is not None and len(current) >= max_tasks
        if current and (current_tokens + tokens > max_tokens or full):
            batches.append(current)
            current, current_tokens = [], 0

        current.append(task)
        current_tokens += tokens

    if current:
        batches.append(current)
    return batches

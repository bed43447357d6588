# src/llm/prompt_builder.py — v1
"""Batch prompt construction with compact opaque ids.

Each task in a batch gets an id ``T1, T2, ...`` so the request carries
no raw key paths and the reply maps back through ``id_map``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from i18ndiff.core.models import TranslationTask

SYSTEM_PROMPT = (
    "You are a professional translator. Return ONLY the requested format, no explanation."
)


@dataclass
class BatchPrompt:
    """Prompt text plus the id -> key path mapping used to read the reply."""

    prompt: str
    id_map: dict[str, str] = field(default_factory=dict)

    @property
    def reverse_map(self) -> dict[str, str]:
        return {key: task_id for task_id, key in self.id_map.items()}


def escape_source(text: str) -> str:
    """Escape backslashes, quotes and newlines for embedding in the prompt."""
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def build_batch_prompt(tasks: list[TranslationTask]) -> BatchPrompt:
    """Build one request for a batch of same-language tasks."""
    if not tasks:
        return BatchPrompt(prompt="")

    target_lang = tasks[0].target_lang
    id_map: dict[str, str] = {}
    entries: list[str] = []
    for i, task in enumerate(tasks, start=1):
        task_id = f"T{i}"
        id_map[task_id] = task.key
        entries.append(f'"{task_id}": "{escape_source(task.source_text)}"')

    prompt = "\n".join([
        f'Target language BCP 47 tag: "{target_lang}". '
        "Translate the values into that language. Return ONLY a JSON object.",
        "",
        "Input:",
        "{" + ", ".join(entries) + "}",
        "",
        "Output:",
        '{"T1": "translated text 1", "T2": "translated text 2"}',
        "",
        "IMPORTANT: Return ONLY the JSON object. Keep \\n in values as \\n.",
    ])
    return BatchPrompt(prompt=prompt, id_map=id_map)

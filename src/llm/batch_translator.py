# src/llm/batch_translator.py — v1
"""Batch translation requests under a shared concurrency limit.

One request per batch. Transport failures are retried per RetryPolicy;
once retries are exhausted every task in the batch fails with the same
error. Missing ids in an otherwise good reply fail individually.
"""

from __future__ import annotations

import asyncio
import logging

from i18ndiff.core.models import BatchOutcome, TranslationResult, TranslationTask
from i18ndiff.llm.base_client import BaseLLMClient
from i18ndiff.llm.models import Message
from i18ndiff.llm.prompt_builder import SYSTEM_PROMPT, build_batch_prompt
from i18ndiff.llm.response_parser import parse_batch_response
from i18ndiff.llm.retry import RetryExhausted, RetryPolicy, with_retry

logger = logging.getLogger(__name__)


class BatchTranslator:
    """Issue batch requests through a bounded-concurrency gate."""

    def __init__(
        self,
        client: BaseLLMClient,
        concurrency: int = 3,
        policy: RetryPolicy | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        semaphore: asyncio.Semaphore | None = None,
    ) -> None:
        self._client = client
        self._policy = policy or RetryPolicy()
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._semaphore = semaphore or asyncio.Semaphore(concurrency)
        self.request_count = 0

    @property
    def model(self) -> str:
        return self._client.model

    async def translate_batch(self, tasks: list[TranslationTask]) -> BatchOutcome:
        """Translate one batch of same-language tasks."""
        if not tasks:
            return BatchOutcome(results=[])

        batch_prompt = build_batch_prompt(tasks)
        label = f"batch[{tasks[0].target_lang}:{tasks[0].file_path}]"
        logger.debug("%s: translating %d texts", label, len(tasks))

        try:
            async with self._semaphore:
                self.request_count += 1
                response = await with_retry(
                    self._client.complete,
                    [Message(role="user", content=batch_prompt.prompt)],
                    system=SYSTEM_PROMPT,
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                    policy=self._policy,
                    label=label,
                )
        except RetryExhausted as e:
            logger.error("%s failed: %s", label, e)
            return BatchOutcome(
                results=_fail_all(tasks, str(e)),
                prompt=batch_prompt.prompt,
            )

        logger.debug(
            "%s raw response keys=%s\n---\n%s\n---",
            label, ",".join(t.key for t in tasks), response.content,
        )
        return BatchOutcome(
            results=parse_batch_response(response.content, tasks, batch_prompt.id_map),
            prompt=batch_prompt.prompt,
            response=response.content,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )


def _fail_all(tasks: list[TranslationTask], error: str) -> list[TranslationResult]:
    return [
        TranslationResult(key=t.key, target_lang=t.target_lang, success=False, error=error)
        for t in tasks
    ]

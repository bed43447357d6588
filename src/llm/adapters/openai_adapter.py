# src/llm/adapters/openai_adapter.py — v2
"""OpenAI-compatible chat completion adapter implementing BaseLLMClient.

Uses the official openai SDK; ``base_url`` points it at any compatible
endpoint.
"""

from __future__ import annotations

import time
from typing import Any

from i18ndiff.llm.base_client import BaseLLMClient, EmptyResponseError
from i18ndiff.llm.models import LLMResponse, Message


class OpenAIAdapter(BaseLLMClient):
    """OpenAI chat completions adapter."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str = "",
        base_url: str | None = None,
        timeout_s: float = 60.0,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._base_url = base_url
        self._timeout_s = timeout_s
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            import openai

            # Retries are owned by llm/retry.py, not the SDK.
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout_s,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> LLMResponse:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for m in messages:
            oai_messages.append({"role": m.role, "content": m.content})

        t0 = time.monotonic()
        resp = await self._get_client().chat.completions.create(
            model=self._model,
            messages=oai_messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        latency = int((time.monotonic() - t0) * 1000)

        content = resp.choices[0].message.content if resp.choices else None
        if not content or not content.strip():
            raise EmptyResponseError("LLM returned empty content")

        usage = resp.usage
        return LLMResponse(
            content=content.strip(),
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

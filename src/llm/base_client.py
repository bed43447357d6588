# src/llm/base_client.py — v2
"""Abstract LLM client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from i18ndiff.llm.models import LLMResponse, Message


class EmptyResponseError(Exception):
    """The service answered without any content."""


class BaseLLMClient(ABC):
    """Unified interface for chat-completion providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> LLMResponse:
        """Text completion. Raises EmptyResponseError on empty content."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model name used for requests."""

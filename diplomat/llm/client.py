"""Text-generation collaborator backed by the Anthropic API."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import anthropic

from diplomat.config import settings
from diplomat.llm.models import friendly, resolve_model

logger = logging.getLogger(__name__)


@runtime_checkable
class TextGenerator(Protocol):
    """Single-prompt completion. May raise on network, timeout or model errors."""

    async def generate(self, prompt: str) -> str:
        ...


class AnthropicGenerator:
    """Single-shot Claude call without tools, streaming or retries.

    The client is created lazily with the configured timeout and
    ``max_retries=0``; the mediator never retries a failed call.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = resolve_model(model or settings.claude_model)
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.timeout = timeout or settings.llm_timeout_seconds
        self._client: anthropic.AsyncAnthropic | None = None
        logger.info("Text generation model: %s", friendly(self.model))

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def generate(self, prompt: str) -> str:
        response = await self._get_client().messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(block.text for block in response.content if block.type == "text")

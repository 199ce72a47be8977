"""LLM Provider implementation using Anthropic Claude API."""

import os
from typing import Protocol

import anthropic


class ILLMProvider(Protocol):
    """Abstraction for the generation capability."""

    async def complete(
        self,
        messages: list[dict],  # [{"role": "user", "content": "..."}]
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> str:
        """Generate completion."""
        ...


class LLMProvider:
    """Anthropic Claude API provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-sonnet-20241022",
    ):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[dict],  # [{"role": "user", "content": "..."}]
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> str:
        """Generate completion using Claude API."""
        request: dict = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if system:
            request["system"] = system

        try:
            response = await self._client.messages.create(**request)
        except Exception as e:
            # Re-raise for handling by caller
            raise RuntimeError(f"LLM API error: {e}") from e

        return "".join(
            block.text
            for block in response.content
            if isinstance(getattr(block, "text", None), str)
        )

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        await self._client.close()

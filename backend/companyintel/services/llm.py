from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from openai import AsyncOpenAI

from ..core.config import Settings

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    async def complete(self, prompt: str, *, system: str | None = None) -> str:
        ...


class OpenAICompletionClient:
    """
    JSON-mode chat completions over an OpenAI-compatible API.

    Concurrency is bounded per instance:

        client = OpenAICompletionClient(AsyncOpenAI(...), model="gpt-4o")
        text = await client.complete(prompt, system="You produce ONLY valid JSON.")
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str,
        max_tokens: int = 1200,
        max_concurrency: int = 4,
    ) -> None:
        self._client = client
        self.model = model
        self.max_tokens = max_tokens
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def complete(self, prompt: str, *, system: str | None = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        async with self._semaphore:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
                max_tokens=self.max_tokens,
                temperature=0.2,
            )

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


def build_completion_client(settings: Settings) -> CompletionClient | None:
    """
    Centralised factory for the completion client used by the extractor.

    - If OPENROUTER_API_KEY is set, route requests via OpenRouter.
    - Otherwise, use the OpenAI API (or OPENAI_BASE_URL) with OPENAI_API_KEY.
    - With neither, return None: extraction is switched off, not broken.
    """
    common = dict(
        model=settings.LLM_MODEL,
        max_tokens=settings.LLM_MAX_TOKENS,
        max_concurrency=settings.LLM_MAX_CONCURRENCY,
    )

    if settings.OPENROUTER_API_KEY:
        # Sanitize key and add required headers for OpenRouter
        return OpenAICompletionClient(
            AsyncOpenAI(
                base_url="https://openrouter.ai/api/v1",
                api_key=settings.OPENROUTER_API_KEY.strip(),
                timeout=settings.LLM_TIMEOUT_SECONDS,
                max_retries=0,
                default_headers={
                    "HTTP-Referer": settings.FRONTEND_ORIGIN or "http://localhost:3000",
                    "X-Title": "Company Intel",
                },
            ),
            **common,
        )

    if settings.OPENAI_API_KEY:
        return OpenAICompletionClient(
            AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY.strip(),
                base_url=settings.OPENAI_BASE_URL or None,
                timeout=settings.LLM_TIMEOUT_SECONDS,
                max_retries=0,
            ),
            **common,
        )

    logger.warning("No LLM API key configured; fact extraction is disabled")
    return None

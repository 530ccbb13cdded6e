"""
Sentinel - AI Service
=====================

Text generation through the OpenAI API for the bot's chat features.

DESIGN:
    generate() never raises. Each call gets MAX_ATTEMPTS tries with
    exponential backoff, then a canned fallback reply. Auto-moderation does
    not depend on this service.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

import openai
from openai import AsyncOpenAI

from sentinel.core.config import get_config
from sentinel.core.logger import logger
from sentinel.utils.retry import retry_async

if TYPE_CHECKING:
    from sentinel.core.config import Config


# =============================================================================
# Constants
# =============================================================================

MAX_TOKENS = 500
API_TIMEOUT = 30.0
MAX_ATTEMPTS = 3
BASE_DELAY = 1.0
MAX_DELAY = 8.0

SYSTEM_PROMPT = "You are a friendly, concise assistant in a Discord community server."
FALLBACK_RESPONSE = "I'm having trouble thinking right now. Please try again in a moment."

RETRYABLE_AI_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
    asyncio.TimeoutError,
)


class EmptyCompletionError(Exception):
    """The API answered without any text."""


# =============================================================================
# AI Service
# =============================================================================

class AIService:
    """Thin wrapper around AsyncOpenAI chat completions."""

    def __init__(
        self,
        config: Optional["Config"] = None,
        client: Optional[AsyncOpenAI] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config or get_config()
        self.model = self.config.ai_model
        self._sleep = sleep
        self._client: Optional[AsyncOpenAI] = client

        if self._client is None and self.config.openai_api_key:
            self._client = AsyncOpenAI(
                api_key=self.config.openai_api_key,
                timeout=API_TIMEOUT,
            )

        if self._client is not None:
            logger.tree("AI Service Initialized", [
                ("Model", self.model),
                ("Max Tokens", str(MAX_TOKENS)),
                ("Attempts", str(MAX_ATTEMPTS)),
                ("Timeout", f"{API_TIMEOUT}s"),
            ], emoji="🤖")
        else:
            logger.warning("AI Service disabled (no OPENAI_API_KEY configured)")

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def _complete(self, prompt: str, max_tokens: int) -> str:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=0.7,
        )
        if response.choices and response.choices[0].message and response.choices[0].message.content:
            return response.choices[0].message.content.strip()
        raise EmptyCompletionError("Empty completion")

    async def generate(self, prompt: str, max_tokens: int = MAX_TOKENS) -> str:
        """
        Generate a reply to `prompt`.

        Returns:
            The model's text, or FALLBACK_RESPONSE when disabled or after
            every attempt failed.
        """
        if not self.enabled:
            return FALLBACK_RESPONSE

        try:
            return await retry_async(
                self._complete,
                prompt,
                max_tokens,
                attempts=MAX_ATTEMPTS,
                base_delay=BASE_DELAY,
                max_delay=MAX_DELAY,
                exceptions=RETRYABLE_AI_ERRORS + (EmptyCompletionError,),
                sleep=self._sleep,
            )
        except Exception as e:
            logger.tree("AI Fallback Used", [
                ("Reason", "Generation failed"),
                ("Error", f"{type(e).__name__}: {str(e)[:50]}"),
            ], emoji="🤖")
            return FALLBACK_RESPONSE


__all__ = ["AIService", "FALLBACK_RESPONSE", "MAX_ATTEMPTS"]

"""Summarization capability: a remote model, a deterministic truncation, and a fallback wrapper."""

import asyncio
import logging
from typing import Protocol

from anthropic import AsyncAnthropic

logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    async def summarize(self, text: str) -> str: ...


class TruncatingSummarizer:
    """Deterministic summary: the first max_chars characters of the input."""

    def __init__(self, max_chars: int):
        self.max_chars = max_chars

    async def summarize(self, text: str) -> str:
        return text[: self.max_chars]


class AnthropicSummarizer:
    """Condenses conversation turns with a Claude model."""

    def __init__(
        self,
        client: AsyncAnthropic,
        model: str,
        max_chars: int,
        max_tokens: int = 600,
        timeout: float | None = None,
    ):
        # One bounded attempt; a slow provider is handled by the fallback, not by SDK retries
        self.client = client.with_options(timeout=timeout, max_retries=0) if timeout is not None else client
        self.model = model
        self.max_chars = max_chars
        self.max_tokens = max_tokens

    async def summarize(self, text: str) -> str:
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[
                {
                    "role": "user",
                    "content": f"""Summarize the following conversation turns into concise bullets (<= {self.max_chars} chars). Preserve user asks and assistant replies. Return plain text.

{text}""",
                }
            ],
        )
        summary = "".join(block.text for block in message.content if block.type == "text").strip()
        if not summary:
            raise ValueError("summarizer returned no text")
        return summary[: self.max_chars]


class FallbackSummarizer:
    """
    Tries the primary summarizer and degrades to the fallback on any failure.

    Compaction must keep working through an AI provider outage, so this is the
    one place a capability error is recovered instead of propagated. A primary
    that has not answered within `timeout` seconds counts as failed.
    """

    def __init__(
        self,
        primary: Summarizer,
        fallback: Summarizer,
        max_chars: int,
        timeout: float | None = None,
    ):
        self.primary = primary
        self.fallback = fallback
        self.max_chars = max_chars
        self.timeout = timeout

    async def summarize(self, text: str) -> str:
        try:
            summary = await asyncio.wait_for(self.primary.summarize(text), timeout=self.timeout)
        except Exception as e:
            logger.warning("conversation.summary.fallback error=%r", e)
            summary = await self.fallback.summarize(text)
        return summary[: self.max_chars]

"""FastAPI dependencies wiring conversation components per request."""

import os
from datetime import datetime
from functools import lru_cache
from typing import Callable

from anthropic import AsyncAnthropic
from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ultramagnus import config
from ultramagnus.agent import AnthropicChatModel, ChatManager, ChatModel
from ultramagnus.config import ConversationLimits
from ultramagnus.conversation import (
    AnthropicSummarizer,
    ConversationComponents,
    FallbackSummarizer,
    Summarizer,
    TruncatingSummarizer,
    build_components,
)
from ultramagnus.db import get_session, utcnow


@lru_cache()
def get_limits() -> ConversationLimits:
    return ConversationLimits.from_env()


@lru_cache()
def get_anthropic_client() -> AsyncAnthropic:
    return AsyncAnthropic()


def get_clock() -> Callable[[], datetime]:
    return utcnow


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, set by the authenticating proxy in front of this service."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


def get_summarizer(limits: ConversationLimits = Depends(get_limits)) -> Summarizer:
    fallback = TruncatingSummarizer(limits.summary_max_chars)
    if not os.getenv("ANTHROPIC_API_KEY"):
        return fallback
    timeout = limits.summary_timeout_seconds
    primary = AnthropicSummarizer(
        get_anthropic_client(), config.SUMMARY_MODEL, limits.summary_max_chars, timeout=timeout
    )
    return FallbackSummarizer(primary, fallback, limits.summary_max_chars, timeout=timeout)


def get_chat_model() -> ChatModel:
    if not os.getenv("ANTHROPIC_API_KEY"):
        raise HTTPException(status_code=503, detail="AI client unavailable")
    return AnthropicChatModel(get_anthropic_client(), config.CHAT_MODEL)


def get_components(
    db: AsyncSession = Depends(get_session),
    summarizer: Summarizer = Depends(get_summarizer),
    limits: ConversationLimits = Depends(get_limits),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ConversationComponents:
    return build_components(db, summarizer, limits, clock=clock)


def get_chat_manager(
    components: ConversationComponents = Depends(get_components),
    chat_model: ChatModel = Depends(get_chat_model),
    limits: ConversationLimits = Depends(get_limits),
) -> ChatManager:
    return ChatManager(
        components.store,
        components.compactor,
        components.reader,
        chat_model,
        limits,
        model_name=config.CHAT_MODEL,
    )
